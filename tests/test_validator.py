"""Unit tests for albsub/validator.py."""

from __future__ import annotations

from albsub.structures import Outcome, ViolationKind
from albsub.validator import LABEL_PATTERN, MARKUP_PATTERN, check_block, extract_tokens, validate_all

from conftest import make_block


def _kinds(violations):
    return [violation.kind for violation in violations]


class TestCheckBlock:

    def test_block_checked_against_itself_is_valid(self):
        block = make_block(1, "<i>[John] Hello</i>", "<b>there</b>")
        assert check_block(block, block) == []

    def test_line_count_mismatch_reports_counts(self):
        original = make_block(4, "Hello", "there")
        translated = make_block(4, "Tung atje")
        violations = [
            violation
            for violation in check_block(original, translated)
            if violation.kind is ViolationKind.LINE_COUNT_MISMATCH
        ]
        assert len(violations) == 1
        assert violations[0].expected == "2"
        assert violations[0].actual == "1"
        assert violations[0].block == 4

    def test_whitespace_only_output_is_empty(self):
        original = make_block(1, "Hello", "there")
        translated = make_block(1, "  ", "")
        assert _kinds(check_block(original, translated)) == [ViolationKind.EMPTY_OUTPUT]

    def test_markup_multiplicity_is_enforced(self):
        original = make_block(1, "<i>Hi</i>", "<i>Bye</i>")
        translated = make_block(1, "<i>Tung</i>", "Mirupafshim")
        violations = check_block(original, translated)
        assert _kinds(violations) == [ViolationKind.MISSING_MARKUP]
        assert violations[0].expected == "</i>, </i>, <i>, <i>"
        assert violations[0].actual == "</i>, <i>"

    def test_markup_may_move_between_lines(self):
        original = make_block(1, "<i>Hi</i> there", "you")
        translated = make_block(1, "Tung", "<i>ti</i> atje")
        assert check_block(original, translated) == []

    def test_lost_label_is_reported(self):
        original = make_block(1, "[John] Hi")
        translated = make_block(1, "Tung")
        violations = check_block(original, translated)
        assert _kinds(violations) == [ViolationKind.MISSING_LABEL]
        assert violations[0].expected == "[John]"
        assert violations[0].actual == "(none)"

    def test_duplicate_labels_must_match(self):
        original = make_block(1, "[A] Hi", "[A] Bye")
        translated = make_block(1, "[A] Tung", "Mirupafshim [A]")
        assert check_block(original, translated) == []

    def test_all_checks_are_evaluated(self):
        original = make_block(1, "<i>[John] Hi</i>", "there")
        translated = make_block(1, "")
        translated.lines = []
        assert _kinds(check_block(original, translated)) == [
            ViolationKind.LINE_COUNT_MISMATCH,
            ViolationKind.EMPTY_OUTPUT,
            ViolationKind.MISSING_MARKUP,
            ViolationKind.MISSING_LABEL,
        ]

    def test_heart_emoticon_is_not_markup(self):
        assert extract_tokens(MARKUP_PATTERN, "I <3 you") == []

    def test_tags_with_attributes_are_tokens(self):
        text = '<font color="#ffff00">Hey</font>'
        assert extract_tokens(MARKUP_PATTERN, text) == ["</font>", '<font color="#ffff00">']

    def test_labels_are_sorted(self):
        assert extract_tokens(LABEL_PATTERN, "[b] x [a]") == ["[a]", "[b]"]


class TestValidateAll:

    def test_counts_passed_failed_and_untransformed(self):
        good = make_block(1, "Hi")
        bad_original = make_block(2, "One", "Two")
        bad_translated = make_block(2, "Nje")
        outcomes = [
            Outcome(original=good, translated=good.copy(), valid=True, untransformed=True),
            Outcome(
                original=bad_original,
                translated=bad_translated,
                valid=False,
                violations=check_block(bad_original, bad_translated),
            ),
        ]
        report = validate_all(outcomes)
        assert report.total == 2
        assert report.passed == 1
        assert report.failed == 1
        assert report.untransformed == 1
        assert [violation.block for violation in report.violations] == [2]
