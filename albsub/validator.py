"""Structural validation of translated subtitle blocks."""

from __future__ import annotations

import re
from typing import Iterable, List

from .structures import (
    Outcome,
    SubtitleBlock,
    ValidationReport,
    Violation,
    ViolationKind,
)

MARKUP_PATTERN = re.compile(r"</?[a-zA-Z][^>]*>")
LABEL_PATTERN = re.compile(r"\[[^\]]+\]")


def extract_tokens(pattern: re.Pattern[str], text: str) -> List[str]:
    """Return every match of ``pattern`` in ``text``, sorted."""

    return sorted(pattern.findall(text))


def _snapshot(tokens: List[str]) -> str:
    return ", ".join(tokens) or "(none)"


def check_block(
    original: SubtitleBlock,
    translated: SubtitleBlock,
) -> List[Violation]:
    """Compare a translation against its source block.

    All checks run; an empty list means the translation is structurally
    equivalent to the original.
    """

    violations: List[Violation] = []

    if len(original.lines) != len(translated.lines):
        violations.append(
            Violation(
                kind=ViolationKind.LINE_COUNT_MISMATCH,
                block=original.number,
                expected=str(len(original.lines)),
                actual=str(len(translated.lines)),
            )
        )

    if not " ".join(translated.lines).strip():
        violations.append(
            Violation(
                kind=ViolationKind.EMPTY_OUTPUT,
                block=original.number,
                expected="non-empty text",
                actual="(empty)",
            )
        )

    for kind, pattern in (
        (ViolationKind.MISSING_MARKUP, MARKUP_PATTERN),
        (ViolationKind.MISSING_LABEL, LABEL_PATTERN),
    ):
        expected = extract_tokens(pattern, original.raw_text)
        actual = extract_tokens(pattern, translated.raw_text)
        if expected != actual:
            violations.append(
                Violation(
                    kind=kind,
                    block=original.number,
                    expected=_snapshot(expected),
                    actual=_snapshot(actual),
                )
            )

    return violations


def validate_all(outcomes: Iterable[Outcome]) -> ValidationReport:
    """Summarise the validation state of a finished run."""

    total = 0
    passed = 0
    untransformed = 0
    violations: List[Violation] = []

    for outcome in outcomes:
        total += 1
        if not outcome.violations:
            passed += 1
        if outcome.untransformed:
            untransformed += 1
        violations.extend(outcome.violations)

    return ValidationReport(
        total=total,
        passed=passed,
        failed=total - passed,
        untransformed=untransformed,
        violations=violations,
    )
