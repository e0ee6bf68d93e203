"""Library for formatting release summaries for the console."""

from abc import ABC, abstractmethod
from collections.abc import Callable, Generator
from dataclasses import dataclass
import json
import sys
from typing import Any, TextIO

import yaml

PADDING = 4


@dataclass(frozen=True)
class Column:
    """A column of a table of releases."""

    header: str
    value: Callable[[dict[str, Any]], str]


def field_value(key: str) -> Callable[[dict[str, Any]], str]:
    """Return a column value reading a single field, empty when unset."""

    def value(row: dict[str, Any]) -> str:
        return str(row.get(key) or "")

    return value


def chart_value(row: dict[str, Any]) -> str:
    """The chart name joined with its version, as helm lists it."""
    if not row.get("chart_version"):
        return str(row.get("chart") or "")
    return f"{row.get('chart')}-{row['chart_version']}"


RELEASE_COLUMNS = [
    Column("NAME", field_value("release_name")),
    Column("NAMESPACE", field_value("namespace")),
    Column("REVISION", field_value("revision")),
    Column("UPDATED", field_value("updated")),
    Column("STATUS", field_value("status")),
    Column("CHART", chart_value),
    Column("APP VERSION", field_value("app_version")),
]


def format_columns(rows: list[list[str]]) -> Generator[str, None, None]:
    """Yield the rows left aligned in columns as wide as their longest value."""
    if not rows:
        return
    widths = [max(len(row[i]) for row in rows) for i in range(len(rows[0]))]
    for row in rows:
        yield "".join(
            value.ljust(width + PADDING) for value, width in zip(row, widths)
        ).rstrip()


class StructFormatter(ABC):
    """A formatter that prints release summaries."""

    @abstractmethod
    def format(self, data: list[dict[str, Any]]) -> Generator[str, None, None]:
        """Format the summaries as lines of output."""

    def print(self, data: list[dict[str, Any]], file: TextIO | None = None) -> None:
        """Output the summaries."""
        for line in self.format(data):
            print(line, file=file or sys.stdout)


class TableFormatter(StructFormatter):
    """A formatter that prints a human readable table."""

    def __init__(self, columns: list[Column] | None = None) -> None:
        """Initialize TableFormatter."""
        self._columns = columns if columns is not None else RELEASE_COLUMNS

    def format(self, data: list[dict[str, Any]]) -> Generator[str, None, None]:
        if not data:
            return
        rows = [[column.header for column in self._columns]]
        rows.extend([column.value(row) for column in self._columns] for row in data)
        yield from format_columns(rows)


class YamlFormatter(StructFormatter):
    """A formatter that prints a yaml document per release."""

    def format(self, data: list[dict[str, Any]]) -> Generator[str, None, None]:
        content = yaml.dump_all(data, sort_keys=False, explicit_start=True)
        yield from content.rstrip("\n").split("\n")


class JsonFormatter(StructFormatter):
    """A formatter that prints a json list of releases."""

    def format(self, data: list[dict[str, Any]]) -> Generator[str, None, None]:
        yield from json.dumps(data, indent=4).split("\n")


FORMATTERS: dict[str, type[StructFormatter]] = {
    "yaml": YamlFormatter,
    "json": JsonFormatter,
}


def formatter(output: str | None) -> StructFormatter:
    """Return the formatter for the output format, a table by default."""
    if output in FORMATTERS:
        return FORMATTERS[output]()
    return TableFormatter()
