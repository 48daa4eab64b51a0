"""
Rendering of response envelopes.

stdout only ever carries the rendered envelope; status lines, warnings and
table-mode errors go to stderr so JSON output stays machine readable.
"""

import json
import sys
from typing import Any, Dict, List, Optional, Sequence, TextIO, Tuple, Union

from meta_ads_cli.models.envelope import ErrorResponse, SuccessResponse

Column = Tuple[str, str]  # (key, header); key may be dotted, e.g. "creative.id"

PRIORITY_KEYS = ("id", "name", "status", "effective_status")
MAX_AUTO_COLUMNS = 6


def format_header(key: str) -> str:
    return key.replace("_", " ").title()


def format_value(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, list):
        return ", ".join(format_value(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def nested_value(row: Dict[str, Any], path: str) -> Any:
    current: Any = row
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def auto_columns(row: Dict[str, Any]) -> List[Column]:
    """Up to six columns, id / name / status first, then alphabetical."""
    def rank(key: str):
        return (PRIORITY_KEYS.index(key), "") if key in PRIORITY_KEYS else (len(PRIORITY_KEYS), key)

    keys = sorted(row.keys(), key=rank)[:MAX_AUTO_COLUMNS]
    return [(key, format_header(key)) for key in keys]


def render_table(rows: Sequence[Dict[str, Any]], columns: Sequence[Column]) -> str:
    headers = [header for _, header in columns]
    body = [[format_value(nested_value(row, key)) for key, _ in columns] for row in rows]
    widths = [max(len(cell) for cell in column) for column in zip(headers, *body)]

    def line(cells: Sequence[str]) -> str:
        return "| " + " | ".join(cell.ljust(width) for cell, width in zip(cells, widths)) + " |"

    border = "+" + "+".join("-" * (width + 2) for width in widths) + "+"
    lines = [border, line(headers), border]
    lines.extend(line(cells) for cells in body)
    lines.append(border)
    return "\n".join(lines)


def render_key_value(data: Dict[str, Any]) -> str:
    rows = [{"key": key, "value": value} for key, value in data.items()]
    return render_table(rows, [("key", "Field"), ("value", "Value")])


def filter_fields(data: Any, fields: Optional[Sequence[str]]) -> Any:
    """Keep only ``fields`` on a dict, or on every dict of a list."""
    if not fields:
        return data

    def pick(item: Any) -> Any:
        if not isinstance(item, dict):
            return item
        return {field: item[field] for field in fields if field in item}

    if isinstance(data, list):
        return [pick(item) for item in data]
    return pick(data)


class OutputFormatter:
    def __init__(
        self,
        format: str = "json",
        verbose: bool = False,
        quiet: bool = False,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
    ):
        self.format = format
        self.verbose = verbose
        self.quiet = quiet
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr

    def output(
        self,
        response: Union[SuccessResponse, ErrorResponse],
        columns: Optional[Sequence[Column]] = None,
    ) -> None:
        if self.format == "table":
            self._output_table(response, columns)
        else:
            print(json.dumps(response.to_dict(), indent=2, default=str), file=self.stdout)

    def _output_table(
        self,
        response: Union[SuccessResponse, ErrorResponse],
        columns: Optional[Sequence[Column]],
    ) -> None:
        if isinstance(response, ErrorResponse):
            self._output_error(response)
            return

        data = response.to_dict()["data"]
        if data is None:
            print("No data to display.", file=self.stdout)
        elif isinstance(data, list):
            if not data:
                print("No results found.", file=self.stdout)
            elif isinstance(data[0], dict):
                print(render_table(data, columns or auto_columns(data[0])), file=self.stdout)
            else:
                print("\n".join(format_value(item) for item in data), file=self.stdout)
        elif isinstance(data, dict):
            if columns:
                print(render_table([data], columns), file=self.stdout)
            else:
                print(render_key_value(data), file=self.stdout)
        else:
            print(format_value(data), file=self.stdout)

    def _output_error(self, response: ErrorResponse) -> None:
        error = response.error
        print(f"Error: {error.code}", file=self.stderr)
        print(error.message, file=self.stderr)
        suggestion = error.details.get("suggestion")
        if suggestion:
            print(f"\nSuggestion: {suggestion}", file=self.stderr)
        if error.retry_after:
            print(f"\nRetry after: {error.retry_after} seconds", file=self.stderr)
        if self.verbose:
            rest = {k: v for k, v in error.details.items() if k != "suggestion"}
            if rest:
                print("\nDetails:", file=self.stderr)
                print(json.dumps(rest, indent=2, default=str), file=self.stderr)

    def success(self, message: str) -> None:
        if not self.quiet:
            print(f"✓ {message}", file=self.stderr)

    def info(self, message: str) -> None:
        if not self.quiet:
            print(f"ℹ {message}", file=self.stderr)

    def warn(self, message: str) -> None:
        print(f"⚠ {message}", file=self.stderr)
