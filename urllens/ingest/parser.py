"""Text and CSV ingestion - turns pasted text or CSV exports into URL sets."""

import csv
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, Optional

from urllens.discovery.url_utils import normalize_url
from urllens.errors import FileTooLargeError, InvalidURLError, UnsupportedFileError

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_LINES = 5
MAX_FILE_BYTES = 5 * 1024 * 1024
ACCEPTED_EXTENSIONS = (".csv", ".txt")

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")
_FREE_TEXT_SEPARATOR_RE = re.compile(r"[,\s]+")


class Delimiter(Enum):
    """Field delimiters recognized in structured input."""

    COMMA = ","
    SEMICOLON = ";"
    TAB = "\t"
    NONE = ""


# Tie-break order when two delimiters have the same count
DELIMITER_PRIORITY = (Delimiter.COMMA, Delimiter.SEMICOLON, Delimiter.TAB)


@dataclass(frozen=True)
class RawToken:
    """A candidate substring of the input and the line it came from."""

    line: int
    text: str


@dataclass(frozen=True)
class InvalidLine:
    """A candidate that failed normalization."""

    line: int
    text: str
    reason: str


@dataclass
class ParseResult:
    """Canonical URLs extracted from user input, plus diagnostics."""

    urls: list[str] = field(default_factory=list)
    invalid_lines: list[InvalidLine] = field(default_factory=list)
    duplicates_removed: int = 0

    @property
    def total_candidates(self) -> int:
        """Number of non-empty candidates processed."""
        return len(self.urls) + len(self.invalid_lines) + self.duplicates_removed


class _ResultBuilder:
    """Feeds candidates through normalization and tracks duplicates."""

    def __init__(self) -> None:
        self.result = ParseResult()
        self._seen: set[str] = set()

    def add(self, token: RawToken) -> None:
        try:
            canonical = normalize_url(token.text)
        except InvalidURLError as e:
            logger.debug("Line %d rejected (%s): %r", token.line, e.reason, token.text)
            self.result.invalid_lines.append(InvalidLine(token.line, token.text, e.reason))
            return

        if canonical is None:
            return

        if canonical in self._seen:
            self.result.duplicates_removed += 1
        else:
            self._seen.add(canonical)
            self.result.urls.append(canonical)


def split_lines(content: str) -> list[tuple[int, str]]:
    """Split text on any line ending and drop blank lines.

    Args:
        content: Raw text.

    Returns:
        ``(line_index, line)`` pairs for every non-blank line.
    """
    return [
        (index, line)
        for index, line in enumerate(_LINE_BREAK_RE.split(content))
        if line.strip()
    ]


def detect_delimiter(
    lines: Iterable[str],
    sample_size: int = DEFAULT_SAMPLE_LINES,
) -> Delimiter:
    """Detect the field delimiter of structured input.

    Counts commas, semicolons and tabs over the first ``sample_size``
    non-blank lines. The delimiter with the highest total wins; ties go to
    comma, then semicolon, then tab.

    Args:
        lines: Input lines.
        sample_size: Number of non-blank lines to inspect.

    Returns:
        Detected delimiter, or ``Delimiter.NONE`` if none appear.
    """
    counts = {delimiter: 0 for delimiter in DELIMITER_PRIORITY}

    sampled = 0
    for line in lines:
        if sampled >= sample_size:
            break
        if not line.strip():
            continue
        sampled += 1
        for delimiter in DELIMITER_PRIORITY:
            counts[delimiter] += line.count(delimiter.value)

    best = Delimiter.NONE
    best_count = 0
    for delimiter in DELIMITER_PRIORITY:
        if counts[delimiter] > best_count:
            best = delimiter
            best_count = counts[delimiter]

    return best


def split_fields(line: str, delimiter: Delimiter) -> list[str]:
    """Split one line into fields, honoring double-quote quoting.

    A doubled quote inside a quoted field stands for one literal quote.

    Args:
        line: A single input line.
        delimiter: Delimiter detected for the input.

    Returns:
        List of field values.
    """
    if delimiter is Delimiter.NONE:
        return [_unquote(line.strip())]

    reader = csv.reader(
        [line],
        delimiter=delimiter.value,
        quotechar='"',
        doublequote=True,
        skipinitialspace=True,
        strict=False,
    )
    try:
        return next(reader, [""])
    except csv.Error:
        return [line]


def _unquote(value: str) -> str:
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1].replace('""', '"')
    return value


def parse_csv(content: str, sample_size: int = DEFAULT_SAMPLE_LINES) -> ParseResult:
    """Parse structured (CSV-like) input and extract URLs.

    The first field of every row is the URL candidate. A leading row whose
    first field is not a URL is treated as a header and skipped.

    Args:
        content: Raw file contents or pasted text.
        sample_size: Lines inspected for delimiter detection.

    Returns:
        Parse result with canonical URLs and diagnostics.
    """
    lines = split_lines(content)
    delimiter = detect_delimiter((line for _, line in lines), sample_size)
    logger.debug("Detected delimiter %s over %d lines", delimiter.name, len(lines))

    builder = _ResultBuilder()

    for row_number, (index, line) in enumerate(lines):
        fields = split_fields(line, delimiter)
        candidate = fields[0].strip() if fields else ""

        if row_number == 0 and not builder.result.urls and not _is_url(candidate):
            logger.debug("Skipping header row: %r", line)
            continue

        if not candidate:
            continue

        builder.add(RawToken(index, candidate))

    return builder.result


def _is_url(candidate: str) -> bool:
    try:
        return normalize_url(candidate) is not None
    except InvalidURLError:
        return False


def tokenize_free_text(text: str) -> Iterator[RawToken]:
    """Split free text on runs of commas and whitespace.

    Newlines, commas and spaces are all boundaries, and any run of them
    counts as one boundary.

    Args:
        text: Pasted text.

    Yields:
        Non-empty tokens with their line index.
    """
    for index, line in enumerate(_LINE_BREAK_RE.split(text)):
        for piece in _FREE_TEXT_SEPARATOR_RE.split(line):
            if piece:
                yield RawToken(index, piece)


def parse_url_list(text: str) -> ParseResult:
    """Parse a free-form list of URLs.

    Supports comma-separated, newline-separated, and space-separated input,
    in any mix.

    Args:
        text: Pasted text.

    Returns:
        Parse result with canonical URLs and diagnostics.
    """
    builder = _ResultBuilder()
    for token in tokenize_free_text(text):
        builder.add(token)
    return builder.result


def read_url_file(path: Path, max_bytes: int = MAX_FILE_BYTES) -> str:
    """Read a CSV or TXT file for ingestion.

    Args:
        path: File to read.
        max_bytes: Largest accepted file size.

    Returns:
        Decoded file contents.

    Raises:
        UnsupportedFileError: If the extension is not .csv or .txt.
        FileTooLargeError: If the file exceeds ``max_bytes``.
    """
    if path.suffix.lower() not in ACCEPTED_EXTENSIONS:
        raise UnsupportedFileError(
            f"Invalid file type '{path.suffix}'. Please use a CSV or TXT file."
        )

    size = path.stat().st_size
    if size > max_bytes:
        raise FileTooLargeError(
            f"File too large ({size} bytes). Maximum size is {max_bytes} bytes."
        )

    return path.read_bytes().decode("utf-8-sig", errors="replace")


def parse_url_file(
    path: Path,
    mode: str = "csv",
    max_bytes: int = MAX_FILE_BYTES,
    sample_size: Optional[int] = None,
) -> ParseResult:
    """Read and parse a URL file.

    Args:
        path: File to read.
        mode: ``"csv"`` for structured parsing, ``"list"`` for free text.
        max_bytes: Largest accepted file size.
        sample_size: Lines inspected for delimiter detection (csv mode).

    Returns:
        Parse result.
    """
    if mode not in ("csv", "list"):
        raise ValueError(f"Unknown parse mode: {mode}")

    content = read_url_file(path, max_bytes)
    if mode == "list":
        return parse_url_list(content)
    return parse_csv(content, sample_size or DEFAULT_SAMPLE_LINES)
