"""
ABOUTME: Builds WordprocessingML tables from string grids or table markup
ABOUTME: Markup is consumed by a streaming state machine (Outside/InRow/InCell)
"""

import io
from enum import Enum
from typing import List, Optional, Sequence

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as DefusedET
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from lxml import etree

from xml_utils import local_name, sanitize_xml_string, set_preserve_space

from .common import NS, TABLE_MARKUP_PREFIX, InvalidArgumentError, MarkupParseError


BORDER_EDGES = ('top', 'left', 'bottom', 'right', 'insideH', 'insideV')
HEADER_SHADING_FILL = 'D9D9D9'
FULL_WIDTH_PCT = '5000'          # Fiftieths of a percent: 5000 = 100%
MAX_MARKUP_DEPTH = 32

# Nesting is not supported inside a cell
_STRUCTURAL_TAGS = ('tbl', 'tr', 'tc')


class ParserState(Enum):
    OUTSIDE = 'outside'
    IN_ROW = 'in_row'
    IN_CELL = 'in_cell'


class TableMaterializer:
    """
    Produce `w:tbl` elements (python-docx CT_Tbl) ready to be inserted into a
    document body.

    Two construction paths share the same output shape:
    - build_from_grid: plain rows of strings, uniform cell styling
    - parse_markup: `w:tbl/w:tr/w:tc` markup, first row styled as header
    """

    # ------------------------------------------------------------
    # Grid path
    # ------------------------------------------------------------

    def build_from_grid(self, grid: Sequence[Sequence[Optional[str]]]):
        """
        Build a bordered, auto-width table from a row-major grid.

        Every row, including row 0, gets the same plain cell styling. Rows are
        rendered with their own cell count; uneven rows are not padded.

        Raises:
            InvalidArgumentError: grid or its first row is empty
        """
        if not grid:
            raise InvalidArgumentError("Table data cannot be null or empty")
        if not grid[0]:
            raise InvalidArgumentError("Table first row cannot be empty")

        tbl = OxmlElement('w:tbl')
        tbl.append(self._build_table_properties(width_type='auto', width='0'))
        tbl.append(self._build_table_grid(len(grid[0])))

        for row_values in grid:
            tr = OxmlElement('w:tr')
            for value in row_values:
                tr.append(self._build_cell('' if value is None else str(value)))
            tbl.append(tr)

        return tbl

    # ------------------------------------------------------------
    # Markup path
    # ------------------------------------------------------------

    def parse_markup(self, markup: str):
        """
        Parse table markup into a styled table.

        The markup is tokenized as a stream of start/end events and driven
        through an explicit state machine:

            OUTSIDE --<tr>--> IN_ROW --<tc>--> IN_CELL
            IN_CELL --</tc>--> IN_ROW --</tr>--> OUTSIDE

        The first row is the header (bold, shaded, repeated on each page).
        Each cell's markup is flattened into a single centered paragraph.

        Raises:
            MarkupParseError: malformed XML, unterminated row/cell tokens,
                nested tables/rows/cells, excessive depth or no rows
        """
        if not markup or not markup.strip():
            raise MarkupParseError("Table markup is empty")

        source = self._ensure_namespace(markup.strip())

        tbl = OxmlElement('w:tbl')
        tbl.append(self._build_table_properties(
            width_type='pct', width=FULL_WIDTH_PCT, banded=True))

        state = ParserState.OUTSIDE
        depth = 0
        row = None
        row_count = 0
        column_count = 0

        events = DefusedET.iterparse(
            io.BytesIO(source.encode('utf-8')), events=('start', 'end'))
        try:
            for token_index, (event, elem) in enumerate(events):
                name = local_name(elem.tag)

                if event == 'start':
                    depth += 1
                    if depth > MAX_MARKUP_DEPTH:
                        raise MarkupParseError(
                            "Table markup nesting too deep", tag=name, position=token_index)

                    if state is ParserState.OUTSIDE:
                        if name == 'tr':
                            state = ParserState.IN_ROW
                            row = OxmlElement('w:tr')
                            if row_count == 0:
                                row.append(self._build_header_row_properties())
                        elif name == 'tc':
                            raise MarkupParseError(
                                "Cell outside of a row", tag=name, position=token_index)
                        elif name == 'tbl' and depth > 1:
                            raise MarkupParseError(
                                "Nested tables are not supported", tag=name, position=token_index)
                    elif state is ParserState.IN_ROW:
                        if name == 'tc':
                            state = ParserState.IN_CELL
                        elif name in ('tr', 'tbl'):
                            raise MarkupParseError(
                                "Nested rows are not supported", tag=name, position=token_index)
                    elif name in _STRUCTURAL_TAGS:
                        raise MarkupParseError(
                            "Nested table content inside a cell is not supported",
                            tag=name, position=token_index)

                else:
                    depth -= 1
                    if state is ParserState.IN_CELL and name == 'tc':
                        cell_text = ''.join(elem.itertext())
                        row.append(self._build_cell(
                            cell_text, bold=row_count == 0, shaded=row_count == 0, centered=True))
                        state = ParserState.IN_ROW
                    elif state is ParserState.IN_ROW and name == 'tr':
                        if row_count == 0:
                            column_count = len(row.findall(qn('w:tc')))
                        tbl.append(row)
                        row_count += 1
                        row = None
                        state = ParserState.OUTSIDE
        except DefusedET.ParseError as e:
            raise MarkupParseError(
                f"Malformed table markup: {e}", position=getattr(e, 'position', None)) from e
        except DefusedXmlException as e:
            raise MarkupParseError(f"Forbidden construct in table markup: {e}") from e

        if row_count == 0:
            raise MarkupParseError("Table markup contains no rows")

        tbl.insert(1, self._build_table_grid(column_count))
        return tbl

    @staticmethod
    def grid_to_markup(grid: Sequence[Sequence[Optional[str]]]) -> str:
        """
        Serialize a grid to table markup (`<w:tbl ...><w:tr><w:tc>text</w:tc>...`).

        Raises:
            InvalidArgumentError: grid or its first row is empty
        """
        if not grid:
            raise InvalidArgumentError("Table data cannot be null or empty")
        if not grid[0]:
            raise InvalidArgumentError("Table first row cannot be empty")

        tbl = etree.Element(f'{{{NS["w"]}}}tbl', nsmap={'w': NS['w']})
        for row_values in grid:
            tr = etree.SubElement(tbl, f'{{{NS["w"]}}}tr')
            for value in row_values:
                tc = etree.SubElement(tr, f'{{{NS["w"]}}}tc')
                tc.text = '' if value is None else sanitize_xml_string(str(value))
        return etree.tostring(tbl, encoding='unicode')

    # ------------------------------------------------------------
    # Element builders
    # ------------------------------------------------------------

    @staticmethod
    def _ensure_namespace(markup: str) -> str:
        """Add the w: namespace declaration when the root tag lacks it."""
        if markup.startswith(TABLE_MARKUP_PREFIX) and 'xmlns:w=' not in markup:
            return markup.replace(TABLE_MARKUP_PREFIX, f'{TABLE_MARKUP_PREFIX} xmlns:w="{NS["w"]}"', 1)
        return markup

    def _build_table_properties(self, width_type: str, width: str, banded: bool = False):
        tblPr = OxmlElement('w:tblPr')

        tblW = OxmlElement('w:tblW')
        tblW.set(qn('w:w'), width)
        tblW.set(qn('w:type'), width_type)
        tblPr.append(tblW)

        borders = OxmlElement('w:tblBorders')
        for edge in BORDER_EDGES:
            border = OxmlElement(f'w:{edge}')
            border.set(qn('w:val'), 'single')
            border.set(qn('w:sz'), '4')
            border.set(qn('w:space'), '0')
            border.set(qn('w:color'), 'auto')
            borders.append(border)
        tblPr.append(borders)

        if banded:
            look = OxmlElement('w:tblLook')
            look.set(qn('w:val'), '04A0')
            look.set(qn('w:firstRow'), '1')
            look.set(qn('w:lastRow'), '0')
            look.set(qn('w:firstColumn'), '1')
            look.set(qn('w:lastColumn'), '0')
            look.set(qn('w:noHBand'), '0')
            look.set(qn('w:noVBand'), '1')
            tblPr.append(look)

        return tblPr

    @staticmethod
    def _build_table_grid(column_count: int):
        tblGrid = OxmlElement('w:tblGrid')
        for _ in range(column_count):
            tblGrid.append(OxmlElement('w:gridCol'))
        return tblGrid

    @staticmethod
    def _build_header_row_properties():
        trPr = OxmlElement('w:trPr')
        trPr.append(OxmlElement('w:tblHeader'))
        return trPr

    @staticmethod
    def _build_cell(text: str, bold: bool = False, shaded: bool = False, centered: bool = False):
        """Build a w:tc holding exactly one paragraph with one run."""
        tc = OxmlElement('w:tc')

        tcPr = OxmlElement('w:tcPr')
        tcW = OxmlElement('w:tcW')
        tcW.set(qn('w:w'), '0')
        tcW.set(qn('w:type'), 'auto')
        tcPr.append(tcW)
        if shaded:
            shd = OxmlElement('w:shd')
            shd.set(qn('w:val'), 'clear')
            shd.set(qn('w:color'), 'auto')
            shd.set(qn('w:fill'), HEADER_SHADING_FILL)
            tcPr.append(shd)
        tc.append(tcPr)

        p = OxmlElement('w:p')
        if centered:
            pPr = OxmlElement('w:pPr')
            jc = OxmlElement('w:jc')
            jc.set(qn('w:val'), 'center')
            pPr.append(jc)
            p.append(pPr)

        r = OxmlElement('w:r')
        if bold:
            rPr = OxmlElement('w:rPr')
            rPr.append(OxmlElement('w:b'))
            r.append(rPr)
        t = OxmlElement('w:t')
        set_preserve_space(t, text)
        r.append(t)
        p.append(r)
        tc.append(p)

        return tc


def table_rows_text(tbl) -> List[List[str]]:
    """Read a built table back into a grid of cell texts."""
    grid = []
    for tr in tbl.findall(qn('w:tr')):
        grid.append([
            ''.join(t.text or '' for t in tc.iter(qn('w:t')))
            for tc in tr.findall(qn('w:tc'))
        ])
    return grid
