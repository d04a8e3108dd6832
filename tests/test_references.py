"""
Tests for reference document tracking
"""

from _tag_pipeline_helpers import FakeDataSource, run

from docx_tags.references import ReferenceResolver, parse_reference_list, remove_html_tags


class TestParseReferenceList:
    def test_pairs_with_html(self):
        source = "<div>DOC-1:System Plan</div>, DOC-2:<b>Test Report</b>"
        assert parse_reference_list(source) == {"DOC-1": "System Plan", "DOC-2": "Test Report"}

    def test_malformed_entries_skipped(self):
        assert parse_reference_list("DOC-1, DOC-2:Ok, a:b:c") == {"DOC-2": "Ok"}

    def test_empty(self):
        assert parse_reference_list("") == {}
        assert parse_reference_list(None) == {}

    def test_remove_html_tags(self):
        assert remove_html_tags(" <p>x</p> ") == "x"


class TestReferenceResolver:
    def test_recorded_once_with_known_title(self):
        resolver = ReferenceResolver(r'DOC-\d+', known_references={"DOC-1": "Plan"})
        text = "see DOC-1, DOC-9 and DOC-1 again"
        assert resolver.scan(text) == text
        assert len(resolver) == 2
        assert resolver.table_grid() == [
            ["Document Number", "Document Title"],
            ["DOC-1", "Plan"],
            ["DOC-9", ""],
        ]

    def test_load_known_references(self):
        source = FakeDataSource(items={500: {"Custom.RefDocs": "DOC-3:Design, DOC-4:Manual"}})
        resolver = ReferenceResolver(r'DOC-\d+')
        count = run(resolver.load_known_references(source, 500, "Custom.RefDocs"))
        assert count == 2
        resolver.scan("DOC-4")
        assert resolver.table_grid()[1] == ["DOC-4", "Manual"]

    def test_load_with_missing_field(self):
        resolver = ReferenceResolver(r'DOC-\d+')
        assert run(resolver.load_known_references(FakeDataSource(), 1, "Custom.RefDocs")) == 0
