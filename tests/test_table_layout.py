"""
Tests for table layout: column widths, wrapping, pagination and spans
"""

import pytest

from models import CellOptions, CellStyle, SourceCell, SourceTable, TableCell
from table_layout import (MergedCell, StaticTableSource, UnsupportedTableLayoutError,
                          cell_from_source, compute_column_widths, materialize_spans,
                          paginate_table, wrap_text_lines)
from units import EMU_PER_INCH

LOREM = ("Lorem ipsum dolor sit amet consectetur adipiscing elit sed do eiusmod tempor "
         "incididunt ut labore et dolore magna aliqua Ut enim ad minim veniam quis nostrud "
         "exercitation ullamco laboris nisi ut aliquip ex ea commodo consequat")


def cell(text="", **options):
    return TableCell(text=text, options=CellOptions(**options))


def normalized(text):
    return " ".join(text.split())


class TestWrapTextLines:
    """Tests for wrap_text_lines."""

    def test_short_text_is_one_line(self):
        assert list(wrap_text_lines("Hello world", 12, 300)) == ["Hello world"]

    def test_long_text_wraps(self):
        lines = list(wrap_text_lines(LOREM, 18, 100))
        assert len(lines) > 1
        assert normalized("".join(lines)) == normalized(LOREM)

    def test_newline_starts_new_line(self):
        lines = list(wrap_text_lines("one\ntwo", 12, 500))
        assert lines == ["one\n", "two"]

    def test_empty_text(self):
        assert list(wrap_text_lines("", 12, 100)) == [""]


class TestColumnWidths:
    """Tests for compute_column_widths."""

    def test_explicit_widths_win(self):
        table = SourceTable(body=[[SourceCell(text="a"), SourceCell(text="b")]])
        assert compute_column_widths(table, 1000000, [1, 2]) == [EMU_PER_INCH, 2 * EMU_PER_INCH]

    def test_proportional_widths(self):
        row = [SourceCell(text="a", style=CellStyle(width=100)), SourceCell(text="b", style=CellStyle(width=300))]
        widths = compute_column_widths(SourceTable(head=[row]), 4000000)
        assert widths == [1000000, 3000000]

    def test_even_split_without_widths(self):
        row = [SourceCell(text="a"), SourceCell(text="b")]
        assert compute_column_widths(SourceTable(body=[row]), 1000) == [500, 500]

    def test_spanning_cell_is_split(self):
        row = [SourceCell(text="a", style=CellStyle(width=200, colspan=2)), SourceCell(text="b", style=CellStyle(width=100))]
        assert compute_column_widths(SourceTable(body=[row]), 3000) == [1000, 1000, 1000]


class TestPaginate:
    """Tests for paginate_table."""

    def test_small_table_fits_on_one_page(self):
        body = [[cell("a"), cell("b")], [cell("c"), cell("d")]]
        pages = paginate_table(body, [EMU_PER_INCH * 4] * 2, EMU_PER_INCH * 5)
        assert len(pages) == 1
        assert [[c.text for c in row] for row in pages[0].rows] == [["a", "b"], ["c", "d"]]

    def test_tall_table_splits_without_loss(self):
        body = [[cell(f"{LOREM} {n}", font_size=14), cell(f"row {n}", font_size=14)] for n in range(12)]
        col_widths = [EMU_PER_INCH * 3, EMU_PER_INCH * 2]
        pages = paginate_table(body, col_widths, EMU_PER_INCH * 3)
        assert len(pages) > 1
        for column in range(2):
            original = " ".join(row[column].text for row in body)
            rebuilt = " ".join(row[column].text for page in pages for row in page.rows)
            assert normalized(rebuilt) == normalized(original)

    def test_no_page_ends_with_empty_row(self):
        body = [[cell(LOREM, font_size=14)], [cell("")], [cell(LOREM, font_size=14)], [cell("")]]
        pages = paginate_table(body, [EMU_PER_INCH * 2], EMU_PER_INCH * 2)
        for page in pages:
            assert any(c.text.strip() for c in page.rows[-1])

    def test_header_repeated_on_each_page(self):
        head = [[cell("Name"), cell("Notes")]]
        body = [[cell(f"item {n}"), cell(LOREM)] for n in range(8)]
        pages = paginate_table(body, [EMU_PER_INCH, EMU_PER_INCH * 3], EMU_PER_INCH * 3,
                               head=head, repeat_header=True)
        assert len(pages) > 1
        for page in pages:
            assert [c.text for c in page.rows[0]] == ["Name", "Notes"]

    def test_oversized_row_does_not_loop(self):
        body = [[cell(LOREM * 3, font_size=40)]]
        pages = paginate_table(body, [EMU_PER_INCH], EMU_PER_INCH // 4)
        assert pages
        rebuilt = " ".join(row[0].text for page in pages for row in page.rows)
        assert normalized(rebuilt) == normalized(LOREM * 3)


class TestSpans:
    """Tests for materialize_spans."""

    def test_colspan_adds_horizontal_placeholders(self):
        grid = materialize_spans([[cell("wide", colspan=3), cell("x")]])
        row = grid[0]
        assert row[1:3] == [MergedCell("h"), MergedCell("h")]
        assert row[3].text == "x"

    def test_rowspan_adds_vertical_placeholders(self):
        rows = [
            [cell("a"), cell("tall", rowspan=3), cell("b")],
            [cell("c"), cell("d")],
            [cell("e"), cell("f")],
        ]
        grid = materialize_spans(rows)
        assert grid[1][1] == MergedCell("v")
        assert grid[2][1] == MergedCell("v")
        assert [c.text for c in grid[1] if isinstance(c, TableCell)] == ["c", "d"]

    def test_rowspan_in_last_column(self):
        grid = materialize_spans([[cell("a"), cell("tall", rowspan=2)], [cell("b")]])
        assert grid[1] == [grid[1][0], MergedCell("v")]

    def test_both_spans_rejected(self):
        with pytest.raises(UnsupportedTableLayoutError):
            materialize_spans([[cell("x", colspan=2, rowspan=2)]])


class TestSourceConversion:
    """Tests for reading source tables."""

    def test_cell_from_source_styles(self):
        source = SourceCell(text="Total", style=CellStyle(
            font_size=12, font_weight="700", color="rgb(255, 0, 0)",
            background_color="rgba(0, 0, 0, 0)", text_align="center", vertical_align="middle",
            padding=(2, 4, 2, 4)))
        result = cell_from_source(source)
        assert result.text == "Total"
        assert result.options.bold is True
        assert result.options.color == "FF0000"
        assert result.options.fill is None
        assert result.options.align.value == "center"
        assert result.options.valign.value == "center"
        assert result.options.margin == (2, 4, 2, 4)

    def test_static_source(self):
        table = SourceTable(body=[[SourceCell(text="a")]])
        source = StaticTableSource({"t1": table})
        assert source.read_table("t1").body[0][0].text == "a"
        assert source.read_table("missing") is None
