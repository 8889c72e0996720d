"""Command line interface for the albsub subtitle translator."""

from __future__ import annotations

import argparse
import pathlib
import re
import sys
from typing import Iterable, Optional, TypeVar

from .configuration import AlbsubConfig, get_settings, require_credentials, resolve_credentials
from .detect import detect_from_blocks
from .errors import (
    AlbsubError,
    OverwriteRefusedError,
    SubtitleFormatError,
    TranslationProviderConfigurationError,
    TranslationProviderError,
    UnsupportedFileTypeError,
)
from .providers import ProviderOptions, build_provider, normalise_provider_name
from .subtitles import parse_srt_file
from .translator import TranslationRunner, TranslationSummary, validate_paths
from .validator import check_block

T = TypeVar("T")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="albsub",
        description="Translate subtitle files (.srt) with LLMs while preserving structure.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    translate = commands.add_parser("translate", help="Translate an SRT file.")
    translate.add_argument("input_file", help="Input .srt file path.")
    translate.add_argument(
        "-o",
        "--output",
        help="Output file path. Defaults to appending the target language code.",
    )
    translate.add_argument(
        "-p",
        "--provider",
        help="LLM provider (anthropic, openai, azure_openai, ollama, echo).",
    )
    translate.add_argument("-m", "--model", help="Provider-specific model name.")
    translate.add_argument(
        "-k",
        "--api-key",
        help="API key (or use ANTHROPIC_API_KEY / OPENAI_API_KEY).",
    )
    translate.add_argument("-b", "--batch-size", type=int, help="Blocks per batch.")
    translate.add_argument("-c", "--context", type=int, help="Context window size.")
    translate.add_argument("-w", "--workers", type=int, help="Parallel workers.")
    translate.add_argument("-r", "--retries", type=int, help="Max retries per block.")
    translate.add_argument(
        "-l",
        "--language",
        help="Source language (auto-detected if omitted).",
    )
    translate.add_argument(
        "-T",
        "--target-language",
        help="Destination language (default: Albanian).",
    )
    translate.add_argument("-t", "--temperature", type=float, help="LLM temperature.")
    translate.add_argument("--config", help="Configuration file path.")
    translate.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Allow overwriting the output file if it already exists.",
    )
    translate.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )
    translate.add_argument(
        "--no-progress",
        action="store_true",
        help="Hide the progress bar.",
    )
    translate.add_argument(
        "--debug-provider",
        action="store_true",
        help="Log complete provider requests and responses for troubleshooting.",
    )

    validate = commands.add_parser(
        "validate",
        help="Validate a translated SRT against the original.",
    )
    validate.add_argument("original", help="Original .srt file.")
    validate.add_argument("translated", help="Translated .srt file.")

    detect = commands.add_parser("detect", help="Detect the language of an SRT file.")
    detect.add_argument("input_file", help="Input .srt file.")

    return parser


def sanitise_language_for_filename(language: str) -> str:
    """Generate a filesystem-friendly suffix from a language descriptor."""

    collapsed = re.sub(r"\s+", "-", language.strip())
    ascii_only = collapsed.encode("ascii", "ignore").decode("ascii")
    cleaned = re.sub(r"[^A-Za-z0-9\-]+", "", ascii_only)
    return cleaned or "translated"


def derive_output_path(input_path: pathlib.Path, language: str) -> pathlib.Path:
    code = sanitise_language_for_filename(language)[:3].lower()
    return input_path.with_name(f"{input_path.stem}.{code}{input_path.suffix}")


def _pick(value: Optional[T], fallback: T) -> T:
    return fallback if value is None else value


def execute_translation(
    args: argparse.Namespace,
    settings: AlbsubConfig,
) -> tuple[int, TranslationSummary | None, str | None]:
    """Execute a translation run and return the exit code, summary, and message."""

    target_language = args.target_language or settings.target_language
    input_path = pathlib.Path(args.input_file).expanduser().resolve()
    output_path = (
        pathlib.Path(args.output).expanduser().resolve()
        if args.output
        else derive_output_path(input_path, target_language)
    )

    try:
        validate_paths(input_path, output_path, force_overwrite=args.force)
        if args.provider:
            settings = settings.model_copy(
                update={"provider": normalise_provider_name(args.provider)}
            )
        require_credentials(settings, args.api_key)
    except FileNotFoundError as exc:
        return 1, None, str(exc)
    except (OverwriteRefusedError, UnsupportedFileTypeError) as exc:
        return 1, None, str(exc)
    except TranslationProviderConfigurationError as exc:
        return 1, None, str(exc)
    except AlbsubError as exc:
        return 1, None, str(exc)

    api_key, base_url = resolve_credentials(settings, args.api_key)
    provider_options = ProviderOptions(
        model=args.model or settings.model,
        temperature=_pick(args.temperature, settings.temperature),
        max_tokens=settings.max_tokens,
        api_key=api_key,
        base_url=base_url,
    )

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        provider = build_provider(
            settings.provider,
            debug=bool(args.debug_provider or settings.provider_debug),
            api_version=settings.azure_openai_api_version,
            deployment_name=settings.azure_openai_deployment_name,
        )
        runner = TranslationRunner(
            input_path=input_path,
            output_path=output_path,
            provider=provider,
            provider_options=provider_options,
            source_language=args.language,
            target_language=target_language,
            batch_size=_pick(args.batch_size, settings.batch_size),
            context_window=_pick(args.context, settings.context_window),
            workers=_pick(args.workers, settings.workers),
            max_retries=_pick(args.retries, settings.max_retries),
            verbose=args.verbose,
            show_progress=not args.no_progress,
        )
        summary = runner.run()
    except TranslationProviderConfigurationError as exc:
        return 1, None, str(exc)
    except TranslationProviderError as exc:
        return 1, None, f"Translation failed: {exc}"
    except SubtitleFormatError as exc:
        return 1, None, str(exc)
    except AlbsubError as exc:
        return 1, None, str(exc)
    except OSError as exc:
        return 1, None, f"File operation failed: {exc}"
    except KeyboardInterrupt:
        return 2, None, "Translation interrupted by user."

    return 0, summary, None


def print_summary(summary: TranslationSummary) -> None:
    """Output a friendly report once processing completes."""

    print("\nTranslation complete.")
    print(f"  Input file:      {summary.input_path}")
    print(f"  Output file:     {summary.output_path}")
    print(f"  Encoding:        {summary.encoding} ({summary.line_ending})")
    print(
        "  Blocks:          "
        f"{summary.passed_blocks} passed / {summary.total_blocks} total "
        f"({summary.failed_blocks} failed)"
    )
    print(f"  Batches:         {summary.total_batches}")
    print(
        f"  Provider:        {summary.provider_name}"
        + (f" ({summary.model})" if summary.model else "")
    )
    print(f"  Source language: {summary.source_language}")
    print(f"  Target language: {summary.target_language}")
    print(f"  Elapsed time:    {summary.elapsed_seconds:.2f} seconds")
    if summary.untransformed_blocks:
        numbers = ", ".join(str(number) for number in summary.untransformed_numbers)
        print(
            f"  Untranslated:    {summary.untransformed_blocks} blocks kept their "
            f"original text (blocks {numbers})"
        )
    if summary.issue_messages:
        print("  Notes:")
        for message in summary.issue_messages:
            print(f"    - {message}")


def run_validate(original: str, translated: str) -> int:
    original_blocks = parse_srt_file(original).blocks
    translated_blocks = parse_srt_file(translated).blocks

    print("\nValidating translation...\n")
    if len(original_blocks) != len(translated_blocks):
        print(
            f"  Block count differs: {len(original_blocks)} original, "
            f"{len(translated_blocks)} translated. Comparing the first "
            f"{min(len(original_blocks), len(translated_blocks))}."
        )

    passed = 0
    failed = 0
    for original_block, translated_block in zip(original_blocks, translated_blocks):
        violations = check_block(original_block, translated_block)
        if not violations:
            passed += 1
            continue
        failed += 1
        for violation in violations:
            print(f"  {violation.describe()}")

    print(f"\nPassed: {passed} | Failed: {failed} | Total: {passed + failed}\n")
    return 1 if failed else 0


def run_detect(input_file: str) -> int:
    blocks = parse_srt_file(input_file).blocks
    detected = detect_from_blocks(blocks)
    print("\nLanguage Detection\n")
    print(f"  File:     {input_file}")
    print(f"  Blocks:   {len(blocks)}")
    print(f"  Language: {detected.name} ({detected.code})\n")
    return 0


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.command == "validate":
        try:
            return run_validate(args.original, args.translated)
        except (OSError, AlbsubError) as exc:
            print(exc)
            return 1

    if args.command == "detect":
        try:
            return run_detect(args.input_file)
        except (OSError, AlbsubError) as exc:
            print(exc)
            return 1

    try:
        settings = get_settings(config_path=args.config)
    except TranslationProviderConfigurationError as exc:
        print(exc)
        return 1

    exit_code, summary, message = execute_translation(args, settings)

    if message:
        print(message)
    if summary:
        print_summary(summary)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
