"""Idempotent text patch models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class InsertionPoint(Enum):
    """Structural positions a directive can insert at."""
    FILE_START = "file_start"
    BLOCK_START = "block_start"
    FILE_END = "file_end"


@dataclass
class PatchDirective:
    """Insert `content` at `insertion_point` unless `marker` is already present.

    For BLOCK_START the content goes right after the opening line of the
    first `<block_name> {` block.
    """
    marker: str
    content: str
    insertion_point: InsertionPoint = InsertionPoint.FILE_START
    block_name: Optional[str] = None

    def __post_init__(self):
        if not self.marker:
            raise ValueError("PatchDirective requires a non-empty marker")
        if self.marker not in self.content:
            raise ValueError(f"PatchDirective content must contain its marker: {self.marker}")
        if self.insertion_point == InsertionPoint.BLOCK_START and not self.block_name:
            raise ValueError("BLOCK_START directives require a block_name")


@dataclass
class Substitution:
    """Literal replacement of every occurrence of `pattern`."""
    pattern: str
    replacement: str

    def __post_init__(self):
        if not self.pattern:
            raise ValueError("Substitution requires a non-empty pattern")
        if self.pattern in self.replacement:
            # Re-applying would keep growing the text
            raise ValueError(
                f"Substitution replacement must not contain its pattern: {self.pattern}"
            )
