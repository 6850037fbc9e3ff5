"""
Table layout: column widths, text wrapping estimates, auto-pagination of
long tables across slides, and expansion of merged cells into the explicit
placeholder cells PresentationML expects.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Protocol, Sequence, Union

from models import (CellOptions, Length, SourceCell, SourceTable,
                    TableCell, coerce_align, coerce_valign)
from units import EMU_PER_INCH, EMU_PER_POINT, line_height_emu, parse_css_color, to_emu

logger = logging.getLogger(__name__)

# Average glyph width is about font size / 2.2 points
CHAR_WIDTH_RATIO = 2.2
# Size PowerPoint uses for table text when none is given
DEFAULT_FONT_SIZE = 18


class UnsupportedTableLayoutError(ValueError):
    """Raised for a cell that spans several rows and several columns at once."""


@dataclass(frozen=True)
class MergedCell:
    """Placeholder occupying a grid slot absorbed by a span ("h": from the left, "v": from above)."""
    direction: str


GridCell = Union[TableCell, MergedCell]


@dataclass
class TablePage:
    rows: List[List[TableCell]] = field(default_factory=list)


# --- 1. Table Source Collaborator ---
class TableSource(Protocol):
    def read_table(self, table_id: str) -> Optional[SourceTable]:
        ...


class StaticTableSource:
    """Serves tables that were captured ahead of time, keyed by id."""

    def __init__(self, tables: Optional[Dict[str, SourceTable]] = None):
        self._tables = {key: SourceTable.model_validate(value) for key, value in (tables or {}).items()}

    def add(self, table_id: str, table: SourceTable) -> None:
        self._tables[table_id] = SourceTable.model_validate(table)

    def read_table(self, table_id: str) -> Optional[SourceTable]:
        table = self._tables.get(table_id)
        if table is None:
            logger.warning(f"No table with id '{table_id}' in the table source.")
        return table


def _is_bold(weight) -> bool:
    if weight is None:
        return False
    if str(weight).lower() in ("bold", "bolder"):
        return True
    try:
        return int(weight) >= 500
    except (TypeError, ValueError):
        return False


def _css_color(value: Optional[str]) -> Optional[str]:
    if not value or value.strip().lower() == "transparent":
        return None
    if re.match(r"rgba\(.*,\s*0(\.0+)?\s*\)$", value.strip()):
        return None
    return parse_css_color(value) or value


def cell_from_source(cell: SourceCell) -> TableCell:
    """Converts a cell read from a rendered table (computed style) into a TableCell."""
    style = cell.style
    options = {
        "font_size": style.font_size,
        "bold": _is_bold(style.font_weight),
        "color": _css_color(style.color),
        "fill": _css_color(style.background_color),
        "colspan": style.colspan if style.colspan and style.colspan > 1 else None,
    }
    text_align = (style.text_align or "").lower()
    if text_align in ("left", "center", "right", "start", "end"):
        options["align"] = coerce_align(text_align)
    if (style.vertical_align or "").lower() in ("top", "middle", "bottom"):
        options["valign"] = coerce_valign(style.vertical_align)
    if style.padding:
        # px and pt are treated 1:1
        options["margin"] = style.padding
    if style.border and any(side.pt for side in style.border):
        options["border"] = [side if side.pt else None for side in style.border]
    return TableCell(text=cell.text, options=CellOptions(**options))


# --- 2. Column Widths ---
def column_count(row: Sequence[TableCell]) -> int:
    return sum(cell.options.colspan or 1 for cell in row)


def compute_column_widths(table: SourceTable, usable_width: int,
                          explicit: Optional[Sequence[Length]] = None) -> List[int]:
    """
    Resolves column widths in EMU for a source table.

    Explicit widths win. Otherwise the first row of the first non-empty
    section is used: each column gets the share of the usable width its
    source cell occupied (a spanning cell's width is split evenly), and a
    column whose cell carries a minimum width in inches uses that instead.
    Without source widths the usable width is divided evenly.
    """
    if explicit:
        return [to_emu(width) for width in explicit]

    first_row = next((group[0] for group in (table.head, table.body, table.foot) if group), [])
    source_widths: List[Optional[float]] = []
    min_widths: List[Optional[float]] = []
    for cell in first_row:
        span = cell.style.colspan or 1
        width = cell.style.width
        for _ in range(span):
            source_widths.append(round(width / span) if width else None)
            min_widths.append(cell.style.min_width)

    count = len(source_widths)
    if count == 0:
        return []
    total = sum(w for w in source_widths if w)
    if total <= 0 or any(w is None for w in source_widths):
        return [int(round(usable_width / count))] * count

    widths = []
    for width, min_width in zip(source_widths, min_widths):
        if min_width:
            widths.append(to_emu(min_width))
        else:
            widths.append(int(round(usable_width * width / total)))
    return widths


# --- 3. Text Wrapping Estimate ---
def wrap_text_lines(text: str, font_size: float, width_pt: float) -> Iterator[str]:
    """
    Lazily splits text into the lines it is likely to occupy in a column.

    Words are packed greedily while the line stays under the estimated
    characters per line; an explicit newline always starts a new line and a
    word longer than a whole line is emitted on its own. Joining the yielded
    lines gives back the text with runs of spaces collapsed: lines inside a
    paragraph keep their trailing space and paragraph ends carry a newline.
    """
    font_size = font_size or DEFAULT_FONT_SIZE
    chars_per_line = width_pt / (font_size / CHAR_WIDTH_RATIO)
    paragraphs = str(text or "").strip().split("\n")
    for number, paragraph in enumerate(paragraphs, start=1):
        current = ""
        for word in paragraph.split():
            if current and len(current) + len(word) + 1 >= chars_per_line:
                yield current
                current = ""
            current += word + " "
        ending = "" if number == len(paragraphs) else "\n"
        yield current.rstrip() + ending


@dataclass
class _RowMetrics:
    lines: List[List[str]]
    line_height: int

    @property
    def line_count(self) -> int:
        return max((len(lines) for lines in self.lines), default=0)

    @property
    def height(self) -> int:
        return self.line_height * self.line_count


def _cell_width(col_widths: Sequence[int], start: int, span: int) -> int:
    if not col_widths:
        return EMU_PER_INCH
    fallback = int(sum(col_widths) / len(col_widths))
    return sum(col_widths[i] if i < len(col_widths) else fallback for i in range(start, start + span))


def _measure_row(row: Sequence[TableCell], col_widths: Sequence[int]) -> _RowMetrics:
    lines = []
    column = 0
    for cell in row:
        span = cell.options.colspan or 1
        width_pt = _cell_width(col_widths, column, span) / EMU_PER_POINT
        lines.append(list(wrap_text_lines(cell.text, cell.options.font_size, width_pt)))
        column += span

    line_count = max((len(cell_lines) for cell_lines in lines), default=0)
    tallest = max(range(len(row)), key=lambda i: len(lines[i]), default=None)
    if tallest is None or line_count == 0:
        return _RowMetrics(lines, 0)

    cell = row[tallest]
    height = line_height_emu(cell.options.font_size or DEFAULT_FONT_SIZE)
    if cell.options.margin:
        top, _, bottom, _ = cell.options.margin
        height += (top + bottom) * EMU_PER_POINT / line_count
    return _RowMetrics(lines, int(round(height)))


def _has_text(row: Sequence[TableCell]) -> bool:
    return any(cell.text.strip() for cell in row)


def _blank_copy(row: Sequence[TableCell]) -> List[TableCell]:
    return [TableCell(text="", options=cell.options.model_copy(deep=True)) for cell in row]


# --- 4. Auto-Pagination ---
def paginate_table(body: Sequence[Sequence[TableCell]], col_widths: Sequence[int], usable_height: int,
                   head: Sequence[Sequence[TableCell]] = (), foot: Sequence[Sequence[TableCell]] = (),
                   repeat_header: bool = False) -> List[TablePage]:
    """
    Splits the head, body and foot rows into pages that fit the usable height.

    Rows are filled one line pass at a time (every column advances by one
    line together). When the next pass would overflow a page that already
    holds content, the page is closed: the row in progress is kept only if
    it has text, and its remaining lines continue on the next page, which
    starts with a copy of the first header row when repeat_header is set.
    """
    pages: List[TablePage] = []
    page = TablePage()
    height = 0
    lines_on_page = 0

    def close_page():
        while page.rows and not _has_text(page.rows[-1]):
            page.rows.pop()
        if page.rows:
            pages.append(page)
            logger.debug(f"Table page {len(pages)} holds {len(page.rows)} row(s).")

    for group in (head, body, foot):
        for source_row in group:
            if not source_row:
                continue
            metrics = _measure_row(source_row, col_widths)
            current = _blank_copy(source_row)
            for index in range(metrics.line_count):
                if height + metrics.line_height > usable_height and lines_on_page > 0:
                    if _has_text(current):
                        page.rows.append(current)
                        current = _blank_copy(source_row)
                    close_page()
                    page = TablePage()
                    height = 0
                    lines_on_page = 0
                    if repeat_header and head:
                        page.rows.append([cell.model_copy(deep=True) for cell in head[0]])
                        height += _measure_row(head[0], col_widths).height

                for cell, cell_lines in zip(current, metrics.lines):
                    if index < len(cell_lines):
                        cell.text += cell_lines[index]
                height += metrics.line_height
                lines_on_page += 1
            page.rows.append(current)

    close_page()
    return pages


# --- 5. Span Materialization ---
def check_spans(rows: Sequence[Sequence[TableCell]]) -> None:
    for r, row in enumerate(rows):
        for c, cell in enumerate(row):
            if (cell.options.colspan or 1) > 1 and (cell.options.rowspan or 1) > 1:
                raise UnsupportedTableLayoutError(
                    f"Cell at row {r + 1}, position {c + 1} has both colspan and rowspan; "
                    "merging in both directions is not supported."
                )


def materialize_spans(rows: Sequence[Sequence[TableCell]]) -> List[List[GridCell]]:
    """
    Expands spans into explicit placeholders.

    A cell spanning N columns is followed by N-1 horizontal placeholders. A
    cell spanning N rows puts a vertical placeholder at its grid column in
    each of the next N-1 rows (only rows that exist), ahead of any real cell
    at or after that column.
    """
    check_spans(rows)
    covered: Dict[int, set] = {}
    grid: List[List[GridCell]] = []
    for r, row in enumerate(rows):
        below = covered.pop(r, set())
        out: List[GridCell] = []
        column = 0
        for cell in row:
            while column in below:
                out.append(MergedCell("v"))
                column += 1
            out.append(cell)
            colspan = cell.options.colspan or 1
            rowspan = cell.options.rowspan or 1
            for offset in range(1, rowspan):
                if r + offset < len(rows):
                    covered.setdefault(r + offset, set()).add(column)
            out.extend(MergedCell("h") for _ in range(colspan - 1))
            column += colspan
        out.extend(MergedCell("v") for c in sorted(below) if c >= column)
        grid.append(out)
    return grid
