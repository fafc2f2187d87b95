from pathlib import Path

import pytest

from kubegen.tools.fs import ensure_package_dirs, find_config_file, write_text_atomic


def test_find_config_file(tmp_path: Path) -> None:
    (tmp_path / "kubegen.yaml").touch()
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)

    assert find_config_file("kubegen.yaml", nested) == tmp_path / "kubegen.yaml"
    assert find_config_file("missing.yaml", nested, required=False) is None
    with pytest.raises(FileNotFoundError, match="No 'missing.yaml' in .* or any directory above it"):
        find_config_file("missing.yaml", nested)


def test_write_text_atomic(tmp_path: Path) -> None:
    path = tmp_path / "module.py"
    write_text_atomic(path, "a = 1\n")
    write_text_atomic(path, "a = 2\n")

    assert path.read_text() == "a = 2\n"
    assert [p.name for p in tmp_path.iterdir()] == ["module.py"]


def test_ensure_package_dirs(tmp_path: Path) -> None:
    directory = ensure_package_dirs(tmp_path, ["pkg", "sub"])
    (tmp_path / "pkg" / "__init__.py").write_text("x = 1\n")

    assert ensure_package_dirs(tmp_path, ["pkg", "sub"]) == directory == tmp_path / "pkg" / "sub"
    assert (directory / "__init__.py").is_file()
    # Existing package markers are left untouched.
    assert (tmp_path / "pkg" / "__init__.py").read_text() == "x = 1\n"
