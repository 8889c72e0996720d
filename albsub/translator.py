"""High-level orchestration for subtitle translation."""

from __future__ import annotations

import asyncio
import math
import pathlib
import re
import sys
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from tqdm import tqdm

from .batcher import DEFAULT_BATCH_SIZE, DEFAULT_CONTEXT_WINDOW, create_batches
from .detect import detect_from_blocks
from .errors import (
    AlbsubError,
    InvalidOptionsError,
    OverwriteRefusedError,
    SubtitleFormatError,
)
from .progress import ProgressBar
from .prompts import (
    DEFAULT_TARGET_LANGUAGE,
    build_retry_prompt,
    build_user_prompt,
    get_system_prompt,
)
from .providers import ProviderOptions, TranslationProvider
from .structures import Batch, Outcome, SubtitleBlock
from .subtitles import ensure_supported, parse_srt_file, write_srt_file
from .validator import check_block, validate_all

DELIMITER = "---"
LABEL_LINE = re.compile(r"^\[\d+\]$")

ProgressCallback = Callable[[int, int], None]


def _emit(message: str) -> None:
    tqdm.write(message, file=sys.stderr)


def split_sections(response: str) -> List[List[str]]:
    """Split response text into per-block line lists.

    Sections are separated by ``---``; blank lines are dropped and a leading
    ``[N]`` label is removed.
    """

    sections: List[List[str]] = []
    for raw in response.split(DELIMITER):
        section = raw.strip()
        if not section:
            continue
        lines = [line for line in section.splitlines() if line.strip()]
        if lines and LABEL_LINE.match(lines[0].strip()):
            lines = lines[1:]
        sections.append(lines)
    return sections


def parse_translation_response(
    response: str,
    blocks: Sequence[SubtitleBlock],
) -> List[Optional[SubtitleBlock]]:
    """Match response sections to blocks by position.

    ``None`` marks a block the response carried no text for.
    """

    sections = split_sections(response)
    candidates: List[Optional[SubtitleBlock]] = []
    for position, block in enumerate(blocks):
        lines = sections[position] if position < len(sections) else []
        if not lines:
            candidates.append(None)
            continue
        candidates.append(
            SubtitleBlock(number=block.number, timestamp=block.timestamp, lines=lines)
        )
    return candidates


async def _retry_block(
    outcome: Outcome,
    provider: TranslationProvider,
    provider_options: ProviderOptions,
    system_prompt: str,
    max_retries: int,
    verbose: bool,
) -> None:
    retries = max_retries
    while not outcome.valid and retries > 0:
        retry_prompt = build_retry_prompt(
            outcome.violations,
            outcome.original.lines,
            outcome.translated.lines,
        )
        try:
            response = await provider.generate(
                system_prompt, retry_prompt, provider_options
            )
        except Exception as exc:
            if verbose:
                _emit(
                    f"Retry for block {outcome.original.number} failed "
                    f"({retries - 1} left): {exc}"
                )
        else:
            (candidate,) = parse_translation_response(response, [outcome.original])
            if candidate is not None:
                outcome.translated = candidate
                outcome.untransformed = False
            outcome.violations = check_block(outcome.original, outcome.translated)
            outcome.valid = not outcome.violations
        retries -= 1


async def translate_batch(
    batch: Batch,
    provider: TranslationProvider,
    provider_options: ProviderOptions,
    *,
    source_language: str,
    target_language: str = DEFAULT_TARGET_LANGUAGE,
    max_retries: int = 2,
    verbose: bool = False,
) -> List[Outcome]:
    """Translate one batch and repair blocks that fail validation.

    The batch is sent in a single request; an error there propagates. Blocks
    that fail validation are then retried one at a time, at most
    ``max_retries`` times each. Retry errors only cost an attempt.
    """

    if max_retries < 0:
        raise InvalidOptionsError(
            f"Retry budget cannot be negative (got {max_retries})."
        )

    system_prompt = get_system_prompt(source_language, target_language)
    user_prompt = build_user_prompt(batch.blocks, batch.context)

    response = await provider.generate(system_prompt, user_prompt, provider_options)
    candidates = parse_translation_response(response, batch.blocks)

    outcomes: List[Outcome] = []
    for original, candidate in zip(batch.blocks, candidates):
        translated = candidate if candidate is not None else original.copy()
        violations = check_block(original, translated)
        outcomes.append(
            Outcome(
                original=original,
                translated=translated,
                valid=not violations,
                violations=violations,
                untransformed=candidate is None,
            )
        )

    failed = [outcome for outcome in outcomes if not outcome.valid]
    if failed and verbose:
        _emit(
            f"Batch {batch.index}: {len(failed)} of {len(outcomes)} blocks "
            "failed validation, retrying individually."
        )
    for outcome in failed:
        await _retry_block(
            outcome,
            provider,
            provider_options,
            system_prompt,
            max_retries,
            verbose,
        )

    return outcomes


@dataclass
class TranslateOptions:
    """Settings for a full translation run."""

    provider: TranslationProvider
    provider_options: ProviderOptions
    source_language: str
    target_language: str = DEFAULT_TARGET_LANGUAGE
    batch_size: int = DEFAULT_BATCH_SIZE
    context_window: int = DEFAULT_CONTEXT_WINDOW
    workers: int = 2
    max_retries: int = 2
    on_progress: Optional[ProgressCallback] = None
    verbose: bool = False


def _check_options(options: TranslateOptions) -> None:
    if options.batch_size <= 0:
        raise InvalidOptionsError(
            f"Batch size must be a positive integer (got {options.batch_size})."
        )
    if options.context_window < 0:
        raise InvalidOptionsError(
            f"Context window cannot be negative (got {options.context_window})."
        )
    if options.workers <= 0:
        raise InvalidOptionsError(
            f"Worker count must be a positive integer (got {options.workers})."
        )
    if options.max_retries < 0:
        raise InvalidOptionsError(
            f"Retry budget cannot be negative (got {options.max_retries})."
        )


async def translate(
    blocks: Sequence[SubtitleBlock],
    options: TranslateOptions,
) -> List[Outcome]:
    """Translate every block and return outcomes sorted by block number.

    Batches are pulled from a shared queue by ``options.workers`` concurrent
    workers, so they finish in arbitrary order.
    """

    _check_options(options)
    batches = create_batches(blocks, options.batch_size, options.context_window)
    if not batches:
        return []

    queue: asyncio.Queue[Batch] = asyncio.Queue()
    for batch in batches:
        queue.put_nowait(batch)

    total = len(blocks)
    completed = 0

    async def worker() -> List[Outcome]:
        nonlocal completed
        results: List[Outcome] = []
        while True:
            try:
                batch = queue.get_nowait()
            except asyncio.QueueEmpty:
                return results

            outcomes = await translate_batch(
                batch,
                options.provider,
                options.provider_options,
                source_language=options.source_language,
                target_language=options.target_language,
                max_retries=options.max_retries,
                verbose=options.verbose,
            )
            results.extend(outcomes)
            completed += len(batch.blocks)
            if options.on_progress is not None:
                options.on_progress(completed, total)

    tasks = [
        asyncio.ensure_future(worker())
        for _ in range(min(options.workers, len(batches)))
    ]
    try:
        per_worker = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    merged = [outcome for results in per_worker for outcome in results]
    merged.sort(key=lambda outcome: outcome.original.number)
    return merged


@dataclass
class TranslationSummary:
    """Report returned after processing a subtitle file."""

    input_path: pathlib.Path
    output_path: pathlib.Path
    encoding: str
    line_ending: str
    total_blocks: int
    passed_blocks: int
    failed_blocks: int
    untransformed_blocks: int
    total_batches: int
    provider_name: str
    model: str | None
    source_language: str
    target_language: str
    elapsed_seconds: float
    issue_messages: List[str] = field(default_factory=list)
    untransformed_numbers: List[int] = field(default_factory=list)


class TranslationRunner:
    """Coordinates parsing, translation, and writing of one subtitle file."""

    def __init__(
        self,
        *,
        input_path: pathlib.Path,
        output_path: pathlib.Path,
        provider: TranslationProvider,
        provider_options: ProviderOptions,
        source_language: str | None,
        target_language: str = DEFAULT_TARGET_LANGUAGE,
        batch_size: int = DEFAULT_BATCH_SIZE,
        context_window: int = DEFAULT_CONTEXT_WINDOW,
        workers: int = 2,
        max_retries: int = 2,
        verbose: bool = False,
        show_progress: bool = True,
    ) -> None:
        self.input_path = input_path
        self.output_path = output_path
        self.provider = provider
        self.provider_options = provider_options
        self.source_language = source_language
        self.target_language = target_language
        self.batch_size = batch_size
        self.context_window = context_window
        self.workers = workers
        self.max_retries = max_retries
        self.verbose = verbose
        self.show_progress = show_progress

    def run(self) -> TranslationSummary:
        start_time = time.time()

        parsed = parse_srt_file(self.input_path)
        if not parsed.blocks:
            raise SubtitleFormatError(
                f"No subtitle blocks found in {self.input_path}."
            )
        if self.verbose:
            print(
                f"Parsed {len(parsed.blocks)} blocks "
                f"({parsed.encoding}, {parsed.line_ending})."
            )

        source_language = self.source_language
        if not source_language:
            detected = detect_from_blocks(parsed.blocks)
            source_language = detected.name
            if self.verbose:
                print(f"Detected language: {detected.name} ({detected.code}).")

        provider = self.provider
        total_batches = (
            math.ceil(len(parsed.blocks) / self.batch_size) if self.batch_size > 0 else 0
        )
        if self.verbose:
            print(
                f"Provider: {provider.name} | Workers: {self.workers} | "
                f"Batch: {self.batch_size} | Context: {self.context_window} | "
                f"Batches: {total_batches}"
            )

        progress = ProgressBar(len(parsed.blocks), disable=not self.show_progress)
        try:
            outcomes = asyncio.run(
                translate(
                    parsed.blocks,
                    TranslateOptions(
                        provider=provider,
                        provider_options=self.provider_options,
                        source_language=source_language,
                        target_language=self.target_language,
                        batch_size=self.batch_size,
                        context_window=self.context_window,
                        workers=self.workers,
                        max_retries=self.max_retries,
                        on_progress=lambda completed, _total: progress.update(completed),
                        verbose=self.verbose,
                    ),
                )
            )
        finally:
            progress.close()

        write_srt_file(
            [outcome.translated for outcome in outcomes],
            self.output_path,
            line_ending=parsed.line_ending,
            bom=parsed.has_bom,
        )

        report = validate_all(outcomes)
        return TranslationSummary(
            input_path=self.input_path,
            output_path=self.output_path,
            encoding=parsed.encoding,
            line_ending=parsed.line_ending,
            total_blocks=report.total,
            passed_blocks=report.passed,
            failed_blocks=report.failed,
            untransformed_blocks=report.untransformed,
            total_batches=total_batches,
            provider_name=provider.name,
            model=self.provider_options.model,
            source_language=source_language,
            target_language=self.target_language,
            elapsed_seconds=time.time() - start_time,
            issue_messages=[violation.describe() for violation in report.violations],
            untransformed_numbers=[
                outcome.original.number for outcome in outcomes if outcome.untransformed
            ],
        )


def validate_paths(
    input_path: pathlib.Path,
    output_path: pathlib.Path,
    force_overwrite: bool,
) -> None:
    """Validate input/output path combinations and overwrite policy."""

    if not input_path.exists():
        raise FileNotFoundError(
            f"Input file not found: {input_path}. Please provide a readable .srt file."
        )
    if not input_path.is_file():
        raise AlbsubError("Input path must be a file.")
    ensure_supported(input_path)

    if input_path.resolve() == output_path.resolve():
        raise OverwriteRefusedError(
            "The output path matches the input file. Refusing to overwrite the source subtitles."
        )

    if output_path.exists() and not force_overwrite:
        raise OverwriteRefusedError(
            "The output file already exists. Rename it or use the overwrite flag."
        )
