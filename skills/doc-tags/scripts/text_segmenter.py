#!/usr/bin/env python3
"""
ABOUTME: Splits a text blob into ordered Text / Table / List blocks
ABOUTME: Table and list regions are matched as HTML elements spanning lines
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List

# Shortest match from an opening tag to the first closing tag of the same kind
TABLE_REGION_PATTERN = re.compile(r'<table[^>]*>.*?</table>', re.IGNORECASE | re.DOTALL)
LIST_REGION_PATTERN = re.compile(r'<(ul|ol)[^>]*>.*?</\1>', re.IGNORECASE | re.DOTALL)


class BlockKind(Enum):
    TEXT = 'text'
    TABLE = 'table'
    LIST = 'list'


@dataclass(frozen=True)
class TextBlock:
    kind: BlockKind
    content: str


class TextSegmenter:
    """
    Eager segmenter: `segment()` returns a complete list.

    Table and list regions are located independently, merged by start offset
    and walked once. Regions of different kinds that overlap are both emitted.
    """

    def segment(self, text: str) -> List[TextBlock]:
        blocks: List[TextBlock] = []
        if not text:
            return blocks

        regions = [(m, BlockKind.TABLE) for m in TABLE_REGION_PATTERN.finditer(text)]
        regions.extend((m, BlockKind.LIST) for m in LIST_REGION_PATTERN.finditer(text))
        regions.sort(key=lambda region: region[0].start())

        cursor = 0
        for match, kind in regions:
            if match.start() > cursor:
                self._append_text(blocks, text[cursor:match.start()])
            blocks.append(TextBlock(kind, match.group(0).strip()))
            cursor = match.end()

        if cursor < len(text):
            self._append_text(blocks, text[cursor:])

        return blocks

    @staticmethod
    def _append_text(blocks: List[TextBlock], fragment: str) -> None:
        fragment = fragment.strip()
        if fragment:
            blocks.append(TextBlock(BlockKind.TEXT, fragment))

    def has_structured_content(self, text: str) -> bool:
        """True when text contains at least one table or list region."""
        if not text:
            return False
        return bool(TABLE_REGION_PATTERN.search(text) or LIST_REGION_PATTERN.search(text))
