"""Tests for source language detection."""

from __future__ import annotations

from albsub.detect import DetectedLanguage, detect_from_blocks, detect_language

from conftest import make_block


def test_english_dialogue_is_detected():
    blocks = [
        make_block(1, "Where are you going tonight?"),
        make_block(2, "I am going home because it is very late."),
        make_block(3, "Would you like me to drive you there?"),
        make_block(4, "Thank you, that would be really kind of you."),
    ]
    assert detect_from_blocks(blocks) == DetectedLanguage(code="en", name="English")


def test_italian_text_is_detected():
    detected = detect_language(
        "Dove stai andando stasera? Sto tornando a casa perché è molto tardi "
        "e domani devo lavorare presto."
    )
    assert detected.code == "it"
    assert detected.name == "Italian"


def test_undetectable_text_is_unknown():
    assert detect_language("") == DetectedLanguage(code="und", name="Unknown")


def test_only_the_first_blocks_are_sampled():
    blocks = [make_block(1, "Where are you going tonight? I am going home now.")]
    blocks += [make_block(n, "Dove stai andando stasera?") for n in range(2, 30)]
    assert detect_from_blocks(blocks, sample_size=1).code == "en"
