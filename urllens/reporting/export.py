"""Result export - CSV and JSON serialization of result records."""

import dataclasses
import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from urllens.discovery.engine import DiscoveryResult
from urllens.ingest.parser import ParseResult


@dataclass(frozen=True)
class ColumnSpec:
    """One export column: record key and header text."""

    key: str
    header: str


PARSE_COLUMNS = [
    ColumnSpec("url", "URL"),
    ColumnSpec("status", "Status"),
    ColumnSpec("line", "Line"),
    ColumnSpec("reason", "Reason"),
]

DISCOVERY_COLUMNS = [
    ColumnSpec("url", "URL"),
    ColumnSpec("source", "Source"),
]


def escape_csv_field(value: str) -> str:
    """Quote a CSV field if it contains a comma, a double quote or a newline."""
    if "," in value or '"' in value or "\n" in value:
        escaped = value.replace('"', '""')
        return f'"{escaped}"'
    return value


def _resolve(record: Any, key: str) -> Any:
    if isinstance(record, dict):
        return record.get(key)
    return getattr(record, key, None)


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def results_to_csv(records: Iterable[Any], columns: Sequence[ColumnSpec]) -> str:
    """Convert result records to CSV text.

    Args:
        records: Dicts or objects holding the column keys.
        columns: Columns to emit, in order.

    Returns:
        CSV text with a header line, lines joined by ``\\n``.
    """
    lines = [",".join(escape_csv_field(col.header) for col in columns)]
    for record in records:
        lines.append(
            ",".join(escape_csv_field(_to_text(_resolve(record, col.key))) for col in columns)
        )
    return "\n".join(lines)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {k: _jsonable(v) for k, v in dataclasses.asdict(value).items()}
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def results_to_json(
    records: Iterable[Any],
    columns: Optional[Sequence[ColumnSpec]] = None,
) -> str:
    """Convert result records to pretty-printed JSON.

    Args:
        records: Dicts, dataclasses or objects.
        columns: When given, only these keys are kept (header text is unused).

    Returns:
        JSON array text.
    """
    rows = []
    for record in records:
        if columns:
            rows.append({col.key: _jsonable(_resolve(record, col.key)) for col in columns})
        else:
            rows.append(_jsonable(record))
    return json.dumps(rows, indent=2, ensure_ascii=False)


def parse_result_to_rows(result: ParseResult) -> list[dict[str, Any]]:
    """Flatten a parse result into export rows (valid URLs, then invalid lines)."""
    rows: list[dict[str, Any]] = [
        {"url": url, "status": "valid", "line": None, "reason": None} for url in result.urls
    ]
    rows.extend(
        {"url": item.text, "status": "invalid", "line": item.line + 1, "reason": item.reason}
        for item in result.invalid_lines
    )
    return rows


def discovery_to_rows(result: DiscoveryResult) -> list[dict[str, Any]]:
    """Flatten a discovery result into export rows."""
    return [{"url": item.url, "source": item.source.value} for item in result.urls]


def write_export(
    records: Iterable[Any],
    columns: Sequence[ColumnSpec],
    output_path: Path,
) -> Path:
    """Write records to a CSV or JSON file, chosen by the file suffix.

    Args:
        records: Records to export.
        columns: Columns to emit.
        output_path: Destination; ``.json`` writes JSON, anything else CSV.

    Returns:
        The written path.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if output_path.suffix.lower() == ".json":
        content = results_to_json(records, columns)
    else:
        content = results_to_csv(records, columns) + "\n"

    with open(output_path, "w", encoding="utf-8", newline="") as f:
        f.write(content)

    return output_path
