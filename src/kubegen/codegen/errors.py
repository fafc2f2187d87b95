from dataclasses import dataclass


@dataclass(eq=False)
class GenerationFailure(Exception):
    """
    Raised when the client module for a single resource could not be generated. It never aborts the generation of
    other resources.
    """

    resource: str
    reason: str

    def __str__(self) -> str:
        return f"Failed to generate client for '{self.resource}': {self.reason}"
