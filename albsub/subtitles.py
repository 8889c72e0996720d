"""SubRip (.srt) reading and writing."""

from __future__ import annotations

import pathlib
from typing import List, Sequence

import srt

from .errors import SubtitleFormatError, UnsupportedFileTypeError
from .structures import ParseResult, SubtitleBlock

BOM = "\ufeff"
SUPPORTED_SUFFIXES = {".srt"}


def ensure_supported(path: pathlib.Path) -> None:
    """Reject files that are not SubRip subtitles."""

    if path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise UnsupportedFileTypeError(
            f"Unsupported file type '{path.suffix or path.name}'. Only .srt files are supported."
        )


def _format_timestamp(subtitle: srt.Subtitle) -> str:
    timestamp = (
        f"{srt.timedelta_to_srt_timestamp(subtitle.start)} --> "
        f"{srt.timedelta_to_srt_timestamp(subtitle.end)}"
    )
    if subtitle.proprietary:
        timestamp += f" {subtitle.proprietary}"
    return timestamp


def _to_subtitle(block: SubtitleBlock) -> srt.Subtitle:
    start, _, remainder = block.timestamp.partition("-->")
    end, _, proprietary = remainder.strip().partition(" ")
    try:
        return srt.Subtitle(
            index=block.number,
            start=srt.srt_timestamp_to_timedelta(start.strip()),
            end=srt.srt_timestamp_to_timedelta(end.strip()),
            content="\n".join(block.lines),
            proprietary=proprietary.strip(),
        )
    except (ValueError, srt.TimestampParseError) as exc:
        raise SubtitleFormatError(
            f"Block {block.number} has an invalid timestamp: {block.timestamp!r}"
        ) from exc


def _parse_blocks(text: str) -> List[SubtitleBlock]:
    blocks: List[SubtitleBlock] = []

    # Unparseable fragments between cues are skipped.
    for subtitle in srt.parse(text, ignore_errors=True):
        text_lines = [line for line in subtitle.content.split("\n") if line.strip()]
        if not text_lines:
            continue
        # Cues without a number take the next running number.
        number = subtitle.index if subtitle.index is not None else len(blocks) + 1
        blocks.append(
            SubtitleBlock(
                number=number,
                timestamp=_format_timestamp(subtitle),
                lines=text_lines,
            )
        )

    return blocks


def parse_srt(data: str | bytes) -> ParseResult:
    """Parse SRT content, remembering its BOM and line-ending convention."""

    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SubtitleFormatError(
                f"Subtitle file is not valid UTF-8: {exc}"
            ) from exc
    else:
        text = data

    has_bom = text.startswith(BOM)
    if has_bom:
        text = text[1:]

    line_ending = "CRLF" if "\r\n" in text else "LF"
    normalized = text.replace("\r\n", "\n")

    return ParseResult(
        blocks=_parse_blocks(normalized),
        encoding="UTF-8 BOM" if has_bom else "UTF-8",
        line_ending=line_ending,
    )


def parse_srt_file(path: pathlib.Path | str) -> ParseResult:
    return parse_srt(pathlib.Path(path).read_bytes())


def write_srt(
    blocks: Sequence[SubtitleBlock],
    *,
    line_ending: str = "LF",
    bom: bool = False,
) -> str:
    """Render blocks as SRT text, keeping their numbers as stored."""

    if not blocks:
        return ""

    content = srt.compose([_to_subtitle(block) for block in blocks], reindex=False)
    if line_ending == "CRLF":
        content = content.replace("\n", "\r\n")
    return (BOM if bom else "") + content


def write_srt_file(
    blocks: Sequence[SubtitleBlock],
    path: pathlib.Path | str,
    *,
    line_ending: str = "LF",
    bom: bool = False,
) -> None:
    content = write_srt(blocks, line_ending=line_ending, bom=bom)
    # newline="" keeps CRLF endings from being translated on Windows.
    with open(path, "w", encoding="utf-8", newline="") as handle:
        handle.write(content)
