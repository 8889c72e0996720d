"""Prompt builders for batch translation and corrective retries."""

from __future__ import annotations

from typing import Iterable, Sequence

from .structures import SubtitleBlock, Violation, ViolationKind

DEFAULT_TARGET_LANGUAGE = "Albanian"

LANGUAGE_NOTES = {
    "albanian": (
        "- Pay attention to grammatical gender in Albanian. Use masculine forms "
        "(ky, ai, i) for male speakers/subjects and feminine forms (kjo, ajo, e) "
        "for female speakers/subjects. Infer gender from speaker names, context, "
        "and the source language grammar.\n"
    ),
}


def get_system_prompt(
    source_language: str,
    target_language: str = DEFAULT_TARGET_LANGUAGE,
) -> str:
    notes = LANGUAGE_NOTES.get(target_language.strip().lower(), "")
    return (
        "You are a professional subtitle translator. Translate the following "
        f"subtitle blocks from {source_language} to {target_language}.\n"
        "\n"
        "Rules:\n"
        "- Keep EXACTLY the same number of lines per block. If the original block "
        "has 2 lines, your translation MUST have exactly 2 lines.\n"
        "- Preserve ALL HTML tags (<i>, <b>, </i>, </b>) exactly as they appear, "
        "in the same positions.\n"
        "- Preserve speaker labels in brackets [Name] exactly as they appear.\n"
        f"- Use natural, colloquial {target_language}: this is movie dialogue, "
        "not a textbook.\n"
        "- Match the tone of the dialogue (comedy = informal, drama = more formal).\n"
        f"{notes}"
        "- Keep proper nouns unchanged (character names, place names).\n"
        '- Each subtitle block is labeled with its number and separated by "---".\n'
        "- Return ONLY the translated blocks in the exact same format. "
        "No explanations.\n"
        "\n"
        "Output format (one block per section, separated by ---):\n"
        "[NUMBER]\n"
        "translated line 1\n"
        "translated line 2\n"
        "---"
    )


def _render_block(block: SubtitleBlock) -> str:
    return f"[{block.number}]\n" + "\n".join(block.lines)


def build_user_prompt(
    blocks: Sequence[SubtitleBlock],
    context: Sequence[SubtitleBlock] = (),
) -> str:
    """Render the blocks to translate, preceded by read-only context."""

    prompt = ""

    if context:
        prompt += (
            "Context (previous dialogue, do NOT translate, for reference only):\n"
        )
        for block in context:
            prompt += _render_block(block) + "\n\n"
        prompt += "---\n\n"

    prompt += "Translate these blocks:\n\n"
    for block in blocks:
        prompt += _render_block(block) + "\n---\n"

    return prompt


def _describe_violation(violation: Violation) -> str:
    prefix = f"Block {violation.block}:"
    if violation.kind is ViolationKind.LINE_COUNT_MISMATCH:
        return (
            f"{prefix} Expected {violation.expected} lines but got "
            f"{violation.actual} lines. You MUST keep exactly "
            f"{violation.expected} lines."
        )
    if violation.kind is ViolationKind.EMPTY_OUTPUT:
        return f"{prefix} Translation was empty. Provide a proper translation."
    if violation.kind is ViolationKind.MISSING_MARKUP:
        return (
            f"{prefix} HTML tags were lost. Original had: {violation.expected}. "
            f"Your translation had: {violation.actual}. "
            "Preserve all HTML tags exactly."
        )
    return (
        f"{prefix} Speaker labels were lost. Original had: {violation.expected}. "
        f"Your translation had: {violation.actual}. "
        "Preserve all [Speaker] labels exactly."
    )


def build_retry_prompt(
    violations: Iterable[Violation],
    original_lines: Sequence[str],
    translated_lines: Sequence[str],
) -> str:
    """Ask for a corrected translation of a single block."""

    issues = "\n".join(_describe_violation(violation) for violation in violations)
    original = "\n".join(original_lines)
    previous = "\n".join(translated_lines)
    return (
        "Your previous translation had the following issues:\n"
        "\n"
        f"{issues}\n"
        "\n"
        "Original text:\n"
        f"{original}\n"
        "\n"
        "Your previous translation:\n"
        f"{previous}\n"
        "\n"
        "Please fix these issues and provide the corrected translation. Remember:\n"
        "- EXACTLY the same number of lines per block\n"
        "- Preserve ALL HTML tags\n"
        "- Preserve ALL speaker labels [Name]\n"
        "- Return ONLY the corrected translation blocks."
    )
