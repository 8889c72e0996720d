"""Core data structures for the albsub translator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List


@dataclass
class SubtitleBlock:
    """Represents a single subtitle cue ready for translation."""

    number: int
    timestamp: str
    lines: List[str]

    @property
    def raw_text(self) -> str:
        return "\n".join(self.lines)

    def copy(self) -> "SubtitleBlock":
        return SubtitleBlock(
            number=self.number,
            timestamp=self.timestamp,
            lines=list(self.lines),
        )


@dataclass
class Batch:
    """A run of blocks translated together, plus read-only context."""

    blocks: List[SubtitleBlock]
    context: List[SubtitleBlock]
    index: int


class ViolationKind(Enum):
    """Structural checks a translated block has to pass."""

    LINE_COUNT_MISMATCH = "line_count_mismatch"
    EMPTY_OUTPUT = "empty_output"
    MISSING_MARKUP = "missing_markup"
    MISSING_LABEL = "missing_label"


@dataclass(frozen=True)
class Violation:
    """A structural mismatch between a block and its translation."""

    kind: ViolationKind
    block: int
    expected: str
    actual: str

    def describe(self) -> str:
        return (
            f"Block {self.block}: {self.kind.value} "
            f"(expected: {self.expected}, got: {self.actual})"
        )


@dataclass
class Outcome:
    """Best known translation of one block and its validation state."""

    original: SubtitleBlock
    translated: SubtitleBlock
    valid: bool
    violations: List[Violation] = field(default_factory=list)
    untransformed: bool = False


@dataclass
class ValidationReport:
    total: int
    passed: int
    failed: int
    untransformed: int
    violations: List[Violation] = field(default_factory=list)


@dataclass
class ParseResult:
    """Blocks read from an SRT source along with its encoding details."""

    blocks: List[SubtitleBlock]
    encoding: str
    line_ending: str

    @property
    def has_bom(self) -> bool:
        return self.encoding == "UTF-8 BOM"
