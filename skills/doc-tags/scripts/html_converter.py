#!/usr/bin/env python3
"""
ABOUTME: Converts work-item HTML into paragraph text or table markup
ABOUTME: Tables and lists are kept as HTML regions for the mixed-content pass
"""

import html as html_lib
import re
from typing import List, Sequence, Tuple

from lxml import etree
from lxml import html as lxml_html

from docx_tags.common import InvalidArgumentError
from docx_tags.table_builder import TableMaterializer
from text_segmenter import BlockKind, TextSegmenter

WHOLE_TABLE_PATTERN = re.compile(r'^\s*<table[^>]*>.*?</table>\s*$', re.IGNORECASE | re.DOTALL)

# Applied in order to plain text blocks
_TEXT_REWRITES = (
    (re.compile(r'<br\s*/?>', re.IGNORECASE), '\n'),
    (re.compile(r'</p\s*>', re.IGNORECASE), '\n'),
    (re.compile(r'</div\s*>', re.IGNORECASE), '\n'),
    (re.compile(r'<[^>]+>'), ''),
)


def is_table_content(html: str) -> bool:
    """True when the whole input is a single HTML table."""
    return bool(html) and bool(WHOLE_TABLE_PATTERN.match(html.strip()))


def strip_html(html: str) -> str:
    """HTML fragment -> plain text with paragraph/line breaks as newlines."""
    text = html
    for pattern, replacement in _TEXT_REWRITES:
        text = pattern.sub(replacement, text)
    return html_lib.unescape(text).strip()


def _element_text(elem) -> str:
    return ' '.join(''.join(elem.itertext()).split())


class HtmlConverter:
    """
    Markup converter used by the WorkItem processor.

    html_to_plain_format() returns either table markup (when the input is one
    table) or text in which any table/list regions are left as HTML.
    """

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.segmenter = TextSegmenter()
        self.materializer = TableMaterializer()

    def html_to_plain_format(self, html: str) -> str:
        if not html:
            return ''

        # Tag placeholders inside the HTML are left for the dispatcher
        if '[[AcronymTable' in html:
            return html

        if is_table_content(html):
            if self.verbose:
                print("  [HTML] converting isolated table content")
            return self.grid_to_markup(self.extract_table_grid(html))

        parts = []
        for block in self.segmenter.segment(html):
            if block.kind is BlockKind.TEXT:
                text = strip_html(block.content)
                if text:
                    parts.append(text)
            else:
                parts.append(block.content)
        return '\n'.join(parts)

    def extract_table_grid(self, html: str) -> List[List[str]]:
        """
        Rows of cell text from an HTML table.

        Raises:
            InvalidArgumentError: no table cells found
        """
        try:
            root = lxml_html.fragment_fromstring(html, create_parent='div')
        except (etree.ParserError, ValueError) as e:
            raise InvalidArgumentError(f"Invalid table HTML: {e}") from e

        grid = []
        for tr in root.iter('tr'):
            cells = [_element_text(cell) for cell in tr if cell.tag in ('th', 'td')]
            if cells:
                grid.append(cells)
        if not grid:
            raise InvalidArgumentError("Table HTML contains no cells")
        return grid

    def list_items(self, html: str) -> List[Tuple[int, str]]:
        """
        Flatten nested ul/ol markup into (level, text) pairs.

        Level 0 is the outermost list; text excludes nested list content.
        """
        try:
            root = lxml_html.fragment_fromstring(html, create_parent='div')
        except (etree.ParserError, ValueError) as e:
            raise InvalidArgumentError(f"Invalid list HTML: {e}") from e

        items: List[Tuple[int, str]] = []

        def walk(list_elem, level):
            for li in list_elem:
                if li.tag != 'li':
                    continue
                own_text = [li.text or '']
                sublists = []
                for child in li:
                    if child.tag in ('ul', 'ol'):
                        sublists.append(child)
                    else:
                        own_text.append(''.join(child.itertext()))
                    own_text.append(child.tail or '')
                text = ' '.join(''.join(own_text).split())
                if text:
                    items.append((level, text))
                for sublist in sublists:
                    walk(sublist, level + 1)

        for top in root:
            if top.tag in ('ul', 'ol'):
                walk(top, 0)
        return items

    def build_table_from_grid(self, grid: Sequence[Sequence[str]]):
        return self.materializer.build_from_grid(grid)

    def grid_to_markup(self, grid: Sequence[Sequence[str]]) -> str:
        return self.materializer.grid_to_markup(grid)
