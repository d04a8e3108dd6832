"""
Tests for TextSegmenter - ordered Text / Table / List blocks
"""

import _tag_pipeline_helpers  # noqa: F401

from text_segmenter import BlockKind, TextBlock, TextSegmenter


class TestSegment:
    def setup_method(self):
        self.segmenter = TextSegmenter()

    def test_five_blocks_in_order(self):
        blocks = self.segmenter.segment("lead <table>X</table> mid <ul>Y</ul> tail")
        assert blocks == [
            TextBlock(BlockKind.TEXT, "lead"),
            TextBlock(BlockKind.TABLE, "<table>X</table>"),
            TextBlock(BlockKind.TEXT, "mid"),
            TextBlock(BlockKind.LIST, "<ul>Y</ul>"),
            TextBlock(BlockKind.TEXT, "tail"),
        ]

    def test_plain_text_single_block(self):
        assert self.segmenter.segment("  just words  ") == [TextBlock(BlockKind.TEXT, "just words")]

    def test_empty_and_blank(self):
        assert self.segmenter.segment("") == []
        assert self.segmenter.segment(None) == []
        assert self.segmenter.segment("   \n ") == []

    def test_blank_gaps_not_emitted(self):
        blocks = self.segmenter.segment("<table>A</table>\n  \n<ol><li>1</li></ol>")
        assert [b.kind for b in blocks] == [BlockKind.TABLE, BlockKind.LIST]

    def test_regions_span_lines_and_ignore_case(self):
        text = "<TABLE border=\"1\">\n<tr><td>a</td></tr>\n</TABLE>"
        blocks = self.segmenter.segment(text)
        assert blocks == [TextBlock(BlockKind.TABLE, text)]

    def test_shortest_table_match(self):
        blocks = self.segmenter.segment("<table>A</table>x<table>B</table>")
        assert [b.content for b in blocks] == ["<table>A</table>", "x", "<table>B</table>"]

    def test_list_closing_tag_must_match(self):
        blocks = self.segmenter.segment("<ol><li>a</li></ol> and <ul><li>b</li></ul>")
        assert [(b.kind, b.content) for b in blocks] == [
            (BlockKind.LIST, "<ol><li>a</li></ol>"),
            (BlockKind.TEXT, "and"),
            (BlockKind.LIST, "<ul><li>b</li></ul>"),
        ]

    def test_overlapping_regions_both_emitted(self):
        """A list inside a table is matched by both patterns and not deduplicated"""
        text = "<table><tr><td><ul><li>x</li></ul></td></tr></table>"
        kinds = [b.kind for b in self.segmenter.segment(text)]
        assert BlockKind.TABLE in kinds
        assert BlockKind.LIST in kinds

    def test_has_structured_content(self):
        assert self.segmenter.has_structured_content("a <ul><li>b</li></ul>")
        assert self.segmenter.has_structured_content("<table></table>")
        assert not self.segmenter.has_structured_content("plain <b>bold</b>")
        assert not self.segmenter.has_structured_content("")
