import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Literal, overload


@overload
def find_config_file(filename: str, cwd: Path | None = None, required: Literal[False] = False) -> Path | None: ...


@overload
def find_config_file(filename: str, cwd: Path | None = None, required: Literal[True] = True) -> Path: ...


def find_config_file(filename: str, cwd: Path | None = None, required: bool = True) -> Path | None:
    """
    Return the nearest *filename*, looking in *cwd* (the working directory by default) and then in each directory
    above it. Without a match, raise [FileNotFoundError] or, if the file is not *required*, return `None`.
    """

    start = cwd or Path.cwd()
    candidates = (directory / filename for directory in (start, *start.parents))
    found = next((candidate for candidate in candidates if candidate.exists()), None)
    if found is None and required:
        raise FileNotFoundError(f"No '{filename}' in '{start}' or any directory above it")
    return found


def write_text_atomic(path: Path, content: str) -> None:
    """
    Replace the contents of *path* with *content*. The text is written to a temporary file in the same directory
    first and then moved into place, so readers never observe a partially written file.
    """

    with NamedTemporaryFile("w", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False) as f:
        tmp = Path(f.name)
        try:
            f.write(content)
        except BaseException:
            f.close()
            tmp.unlink(missing_ok=True)
            raise

    try:
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def ensure_package_dirs(root: Path, parts: list[str]) -> Path:
    """
    Create the directories *parts* below *root* and make each of them a Python package by adding an empty
    `__init__.py` if it does not exist yet. Returns the innermost directory.
    """

    directory = root
    for part in parts:
        directory = directory / part
        directory.mkdir(parents=True, exist_ok=True)
        (directory / "__init__.py").touch(exist_ok=True)
    return directory
