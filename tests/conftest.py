"""
Shared pytest fixtures and fakes for the albsub test suite.

Providers are replaced by ScriptedProvider, which records every user prompt
it receives and answers either from a fixed list of responses or through an
async responder function.
"""

from __future__ import annotations

import asyncio
import re

import pytest

from albsub.configuration import _env_key_map, clear_settings_cache
from albsub.providers import ProviderOptions, TranslationProvider
from albsub.structures import SubtitleBlock


SAMPLE_SRT = (
    "1\n"
    "00:00:01,000 --> 00:00:03,000\n"
    "<i>Where are you going?</i>\n"
    "\n"
    "2\n"
    "00:00:04,000 --> 00:00:06,500\n"
    "[John] Home.\n"
    "It is late.\n"
    "\n"
)


def make_block(number: int, *lines: str) -> SubtitleBlock:
    """Build a block with a timestamp derived from its number."""
    return SubtitleBlock(
        number=number,
        timestamp=f"00:00:{number % 60:02d},000 --> 00:00:{number % 60:02d},900",
        lines=list(lines) or [f"Line {number}"],
    )


def make_blocks(count: int, start: int = 1) -> list[SubtitleBlock]:
    return [make_block(number) for number in range(start, start + count)]


def echo_reply(user_prompt: str) -> str:
    """Answer a batch prompt with its own blocks, untouched."""
    return user_prompt.partition("Translate these blocks:")[2].strip()


def prompt_numbers(user_prompt: str) -> list[int]:
    """Block numbers requested in a batch prompt (context excluded)."""
    blocks = user_prompt.partition("Translate these blocks:")[2]
    return [int(value) for value in re.findall(r"^\[(\d+)\]$", blocks, re.MULTILINE)]


def run(coro):
    return asyncio.run(coro)


class ScriptedProvider(TranslationProvider):
    """Fake provider answering from a script; exceptions in the script are raised."""

    name = "scripted"

    def __init__(self, *responses, responder=None):
        self.responses = list(responses)
        self.responder = responder
        self.calls: list[str] = []

    async def generate(self, system_prompt, user_prompt, options):
        self.calls.append(user_prompt)
        if self.responder is not None:
            result = await self.responder(user_prompt)
        else:
            result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def provider_options():
    return ProviderOptions(model="test-model", temperature=0.0, max_tokens=256)


@pytest.fixture
def clean_config(monkeypatch, tmp_path):
    """Isolate configuration loading from the real home directory and env."""
    for key in _env_key_map():
        monkeypatch.delenv(key, raising=False)
    for key in (
        "ANTHROPIC_API_KEY",
        "OPENAI_API_KEY",
        "AZURE_OPENAI_API_KEY",
        "AZURE_OPENAI_ENDPOINT",
        "AZURE_OPENAI_API_VERSION",
        "AZURE_OPENAI_DEPLOYMENT_NAME",
    ):
        monkeypatch.delenv(key, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    clear_settings_cache()
    yield tmp_path
    clear_settings_cache()
