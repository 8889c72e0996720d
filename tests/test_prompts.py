"""Tests for prompt construction."""

from __future__ import annotations

from albsub.prompts import build_retry_prompt, build_user_prompt, get_system_prompt
from albsub.structures import Violation, ViolationKind

from conftest import make_block


def test_system_prompt_names_both_languages():
    prompt = get_system_prompt("English", "Albanian")
    assert "from English to Albanian" in prompt
    assert "grammatical gender in Albanian" in prompt


def test_language_notes_only_apply_to_their_language():
    prompt = get_system_prompt("English", "Italian")
    assert "from English to Italian" in prompt
    assert "grammatical gender" not in prompt


def test_user_prompt_without_context():
    prompt = build_user_prompt([make_block(4, "Hi"), make_block(5, "A", "B")])
    assert prompt.startswith("Translate these blocks:\n\n")
    assert "[4]\nHi\n---\n" in prompt
    assert "[5]\nA\nB\n---\n" in prompt
    assert "Context" not in prompt


def test_user_prompt_puts_context_before_blocks():
    prompt = build_user_prompt([make_block(4, "Hi")], [make_block(3, "Earlier")])
    context, marker, blocks = prompt.partition("Translate these blocks:")
    assert marker
    assert "do NOT translate" in context
    assert "[3]\nEarlier" in context
    assert "Earlier" not in blocks
    assert "[4]\nHi" in blocks


def test_retry_prompt_lists_every_violation():
    violations = [
        Violation(ViolationKind.LINE_COUNT_MISMATCH, 7, "2", "1"),
        Violation(ViolationKind.MISSING_MARKUP, 7, "</i>, <i>", "(none)"),
    ]
    prompt = build_retry_prompt(violations, ["<i>Hello</i>", "there"], ["Tung atje"])
    assert "Block 7: Expected 2 lines but got 1 lines." in prompt
    assert "You MUST keep exactly 2 lines." in prompt
    assert "HTML tags were lost. Original had: </i>, <i>." in prompt
    assert "Original text:\n<i>Hello</i>\nthere\n" in prompt
    assert "Your previous translation:\nTung atje\n" in prompt


def test_retry_prompt_empty_output_message():
    prompt = build_retry_prompt(
        [Violation(ViolationKind.EMPTY_OUTPUT, 2, "non-empty text", "(empty)")],
        ["Hi"],
        [""],
    )
    assert "Block 2: Translation was empty." in prompt
