"""
Link resolver.

Reads the document's variables section (assignments, named data tables and
import directives) into link tables, and turns quoted references further down
the document into navigable links.

Example variables block::

    Variables:
        Url = "http://localhost"
        * Users
            | id | name  |
            | 1  | Alice |
        Import "common.feature"

``"Users.1"`` then resolves to the Alice row, ``"Users.1.name"`` to its
``name`` cell and ``"Url"`` to the assignment.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from . import words as w
from .cancellation import CancelCheck, check_cancelled
from .classifier import is_multiline_delimiter
from .document import LineSource, TextRange
from .matcher import VARIABLES_SECTION
from .vocabulary import DEFAULT_TABLE, LinkRecord, LinkTables, Vocabulary

logger = logging.getLogger(__name__)

_ROW_RE = re.compile(r"^\s*\|")
_CELL_RE = re.compile(r""""(?:\\\||[^"])*"|'(?:\\'|[^'])*'|[^\s|][^|]*[^\s|]|[^\s|]""")
_ASSIGN_RE = re.compile(rf"^\s*([{w.LETTERS}][0-9{w.LETTERS}]*)\s*=\s*(.*?)\s*$")
_SKIP_RE = re.compile(r"^\s*(?:#|@|//)")
_TABLE_RE = re.compile(r"^\s*\*")
_QUOTED_RE = re.compile(r"""(["'])((?:\\\1|(?!\1).)*)\1""")
_EXTERNAL_RE = re.compile(r"^e1cib/\S+$")
_IDENT = rf"[{w.LETTERS}][0-9{w.LETTERS}]*"
_DOTTED_RE = re.compile(rf"^{_IDENT}(?:\.{_IDENT})*$")


@dataclass
class LinkScan:
    """Link tables of a document and the line where its variables block ends."""

    tables: LinkTables = field(default_factory=dict)
    boundary: int = 0

    def find(self, table: str, row: str, column: str | None = None) -> tuple[str, str, str | None, LinkRecord] | None:
        """
        Look up ``table.row[.column]``.

        A two-part reference that is not a row of ``table`` is retried as a
        default-table row ``table`` with column ``row``.
        """
        record = self.tables.get(table, {}).get(row)
        if record is not None:
            return table, row, column, record
        if column is None:
            return self.find(DEFAULT_TABLE, table, row)
        return None


@dataclass(frozen=True)
class LinkData:
    """A resolved ``getLinkData`` reference."""

    record: LinkRecord
    table: str
    column: str | None
    param: str


@dataclass(frozen=True)
class DocumentLink:
    range: TextRange
    url: str
    tooltip: str | None = None


def _lookup(scan: LinkScan, key: str) -> tuple[str, str, str | None, LinkRecord] | None:
    parts = [part.lower() for part in key.split(".")]
    if len(parts) == 1:
        return scan.find(DEFAULT_TABLE, parts[0])
    if len(parts) == 2:
        return scan.find(parts[0], parts[1])
    if len(parts) == 3:
        return scan.find(parts[0], parts[1], parts[2])
    return None


class _BlockReader:
    """Line-by-line interpreter of a variables block."""

    def __init__(self, vocabulary: Vocabulary):
        self.vocabulary = vocabulary
        self.tables: LinkTables = {DEFAULT_TABLE: {}}
        self.table = DEFAULT_TABLE
        self.columns: list[str] | None = None
        self.multiline = False
        self.text = ""
        self.target: tuple[str, str] | None = None

    def _reset(self) -> None:
        self.table = DEFAULT_TABLE
        self.columns = None
        self.target = None

    def row(self, line: str) -> None:
        cells = [w.trim_quotes(cell) for cell in _CELL_RE.findall(line)]
        if not cells:
            return
        if self.columns is None:
            self.columns = cells
            return
        cells += [""] * (len(self.columns) - len(cells))
        record = LinkRecord(
            key=cells[0],
            name=cells[1] if len(cells) > 1 else "",
            data={column: cells[i] for i, column in enumerate(self.columns)},
        )
        self.tables.setdefault(self.table, {})[cells[0].lower()] = record

    def assign(self, name: str, value: str) -> None:
        self._reset()
        key = name.lower()
        self.tables[DEFAULT_TABLE][key] = LinkRecord(key=key, name=value.strip())
        self.target = (DEFAULT_TABLE, key)

    def append_text(self, line: str) -> None:
        self.text = line if not self.text else f"{self.text}\n{line}"
        if self.target:
            table, key = self.target
            record = self.tables[table][key]
            self.tables[table][key] = LinkRecord(
                key=record.key, name=self.text, file=record.file, data=record.data
            )

    def merge_import(self, filename: str) -> None:
        self._reset()
        imported = self.vocabulary.imports.get(w.trim_quotes(filename).lower())
        if not imported:
            logger.debug("Import '%s' is not registered", filename)
            return
        self.tables[DEFAULT_TABLE].update(imported.get(DEFAULT_TABLE, {}))
        for name, rows in imported.items():
            if name:
                self.tables[name] = dict(rows)

    def other(self) -> None:
        if self.columns is not None:
            self.table = DEFAULT_TABLE
        self.columns = None
        self.target = None

    def feed(self, line: str) -> bool:
        """Interpret one line; returns False when the line ends the block."""
        if is_multiline_delimiter(line):
            self.multiline = not self.multiline
            if self.multiline:
                self.text = ""
            return True
        if self.multiline:
            self.append_text(line)
            return True
        if _ROW_RE.match(line):
            self.row(line)
            return True
        assignment = _ASSIGN_RE.match(line)
        if assignment:
            self.assign(assignment.group(1), assignment.group(2))
            return True
        filename = self.vocabulary.patterns.match_import(line)
        if filename is not None:
            self.merge_import(filename)
            return True
        if _SKIP_RE.match(line):
            return True
        table = _TABLE_RE.match(line)
        if table:
            self.table = line[table.end() :].strip().lower()
            self.columns = None
            return True
        if self.vocabulary.patterns.is_section(line):
            return False
        self.other()
        return True


class LinkResolver:
    def scan(self, vocabulary: Vocabulary, document: LineSource, cancel: CancelCheck | None = None) -> LinkScan:
        """
        Build link tables from the document's variables section.

        Returns:
            The tables and the boundary line: the section line that ends the
            variables block, or the last line when nothing follows it. With no
            variables section the tables are empty and the boundary is the last line.
        """
        count = document.line_count
        patterns = vocabulary.patterns
        for number in range(1, count + 1):
            check_cancelled(cancel, "links", number)
            if not patterns.is_section(document.line(number), VARIABLES_SECTION):
                continue
            reader = _BlockReader(vocabulary)
            for inner in range(number + 1, count + 1):
                check_cancelled(cancel, "links", inner)
                if not reader.feed(document.line(inner)):
                    return LinkScan(tables=reader.tables, boundary=inner)
            return LinkScan(tables=reader.tables, boundary=count)
        return LinkScan(boundary=count)

    def get_link_data(
        self, vocabulary: Vocabulary, document: LineSource, key: str, cancel: CancelCheck | None = None
    ) -> LinkData | None:
        found = _lookup(self.scan(vocabulary, document, cancel), key)
        if found is None:
            return None
        table, _, column, record = found
        return LinkData(record=record, table=table, column=column, param=key)

    def provide_links(
        self, vocabulary: Vocabulary, document: LineSource, cancel: CancelCheck | None = None
    ) -> list[DocumentLink]:
        scan = self.scan(vocabulary, document, cancel)
        links: list[DocumentLink] = []
        for number in range(1, document.line_count + 1):
            check_cancelled(cancel, "links", number)
            line = document.line(number)
            for match in _QUOTED_RE.finditer(line):
                param = match.group(0)[1:-1]
                link_range = TextRange(number, match.start() + 2, number, match.end())
                if _EXTERNAL_RE.match(param):
                    links.append(DocumentLink(range=link_range, url=param))
                    continue
                if number <= scan.boundary or not _DOTTED_RE.match(param):
                    continue
                found = _lookup(scan, param)
                if found is None:
                    continue
                _, _, column, record = found
                tooltip = record.name
                if column:
                    for name, value in record.data.items():
                        if name.lower() == column:
                            tooltip = value
                links.append(DocumentLink(range=link_range, url=f"link:{param}", tooltip=tooltip))
        logger.debug("provideLinks %s: %d links", document.uri, len(links))
        return links
