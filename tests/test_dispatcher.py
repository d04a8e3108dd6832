"""
Tests for TagDispatcher - per-paragraph substitution, table short-circuit, error markers
"""

from docx.oxml.ns import qn

from _tag_pipeline_helpers import FailingProcessor, StaticProcessor, run

from docx_tags.acronyms import AcronymResolver
from docx_tags.common import DataSourceError, ProcessingResult, ResultKind
from docx_tags.dispatcher import TagDispatcher, find_tag_matches
from docx_tags.processors import ProcessorContext, TagProcessor, TagProcessorRegistry
from docx_tags.references import ReferenceResolver
from docx_tags.table_builder import TableMaterializer, table_rows_text

TABLE_MARKUP = TableMaterializer.grid_to_markup([["H"], ["v"]])


def _dispatcher(*entries, acronym_resolver=None, **kwargs):
    registry = TagProcessorRegistry()
    for name, processor in entries:
        registry.register(name, processor)
    return TagDispatcher(
        registry, acronym_resolver if acronym_resolver is not None else AcronymResolver(), **kwargs)


class TestFindTagMatches:
    def test_spans_and_content(self):
        text = "a [[WorkItem:12]] b [[WorkItem:34]]"
        matches = find_tag_matches(text, "WorkItem")
        assert [m.content for m in matches] == ["12", "34"]
        assert text[slice(*matches[0].span)] == "[[WorkItem:12]]"
        assert matches[1].raw == "[[WorkItem:34]]"

    def test_first_closing_bracket_wins(self):
        matches = find_tag_matches("[[Q:a]]b]]", "Q")
        assert [m.content for m in matches] == ["a"]

    def test_content_cannot_span_lines(self):
        assert find_tag_matches("[[Q:a\nb]]", "Q") == []

    def test_empty_content_not_matched(self):
        assert find_tag_matches("[[Q:]]", "Q") == []

    def test_other_tag_names_ignored(self):
        assert find_tag_matches("[[WorkItems:1]] [[workitem:2]]", "WorkItem") == []


class TestTextSubstitution:
    def test_no_tags_identity(self):
        dispatcher = _dispatcher(("WorkItem", StaticProcessor("X")))
        result = run(dispatcher.process("Nothing to see here."))
        assert result.kind is ResultKind.TEXT
        assert result.text == "Nothing to see here."

    def test_no_tags_acronyms_still_collected(self):
        resolver = AcronymResolver()
        dispatcher = _dispatcher(acronym_resolver=resolver)
        text = "The Example Definition (ED) applies."
        assert run(dispatcher.process(text)).text == text
        assert resolver.get("ED").definition == "Example Definition"

    def test_single_tag_replaced_exactly(self):
        processor = StaticProcessor("replacement")
        dispatcher = _dispatcher(("WorkItem", processor))
        result = run(dispatcher.process("Before [[WorkItem:42]] after."))
        assert result.text == "Before replacement after."
        assert processor.seen == ["42"]

    def test_repeated_tag_each_replaced(self):
        dispatcher = _dispatcher(("T", StaticProcessor("x")))
        assert run(dispatcher.process("[[T:1]]-[[T:1]]-[[T:2]]")).text == "x-x-x"

    def test_output_echoing_later_tag_left_alone(self):
        class Echo(TagProcessor):
            async def process_tag(self, content, context=None):
                return "see [[T:2]]" if content == "1" else "X"

        dispatcher = _dispatcher(("T", Echo()))
        assert run(dispatcher.process("[[T:1]] | [[T:2]]")).text == "see [[T:2]] | X"

    def test_shorter_and_longer_outputs_keep_positions(self):
        class Sized(TagProcessor):
            async def process_tag(self, content, context=None):
                return {"1": "", "2": "long replacement", "3": "z"}[content]

        dispatcher = _dispatcher(("T", Sized()))
        result = run(dispatcher.process("a[[T:1]]b[[T:2]]c[[T:3]]d"))
        assert result.text == "ablong replacementczd"

    def test_tags_processed_in_registry_order(self):
        calls = []

        class Recording(TagProcessor):
            def __init__(self, label):
                self.label = label

            async def process_tag(self, content, context=None):
                calls.append(self.label)
                return self.label

        dispatcher = _dispatcher(("B", Recording("b")), ("A", Recording("a")))
        result = run(dispatcher.process("[[A:1]] [[B:1]] [[A:2]]"))
        assert calls == ["b", "a", "a"]
        assert result.text == "a b a"

    def test_none_result_becomes_empty(self):
        dispatcher = _dispatcher(("T", StaticProcessor(None)))
        assert run(dispatcher.process("x[[T:1]]y")).text == "xy"

    def test_processing_result_text_accepted(self):
        dispatcher = _dispatcher(("T", StaticProcessor(ProcessingResult.from_text("ok"))))
        assert run(dispatcher.process("[[T:1]]!")).text == "ok!"


class TestTableShortCircuit:
    def test_table_markup_returns_table(self):
        dispatcher = _dispatcher(("Table", StaticProcessor(TABLE_MARKUP)))
        result = run(dispatcher.process("[[Table:1]]"))
        assert result.is_table
        assert result.table.tag == qn('w:tbl')
        assert table_rows_text(result.table) == [["H"], ["v"]]

    def test_later_tags_left_unprocessed(self):
        text_processor = StaticProcessor("text")
        dispatcher = _dispatcher(
            ("Table", StaticProcessor(TABLE_MARKUP)), ("Plain", text_processor))
        result = run(dispatcher.process("[[Table:1]] and [[Plain:2]]"))
        assert result.is_table
        assert text_processor.seen == []

    def test_later_matches_of_same_tag_unprocessed(self):
        processor = StaticProcessor(TABLE_MARKUP)
        dispatcher = _dispatcher(("Table", processor))
        run(dispatcher.process("[[Table:1]] [[Table:2]]"))
        assert processor.seen == ["1"]

    def test_prebuilt_table_used_as_is(self):
        table = TableMaterializer().build_from_grid([["a"]])
        dispatcher = _dispatcher(("T", StaticProcessor(ProcessingResult.from_table(table))))
        assert run(dispatcher.process("[[T:x]]")).table is table

    def test_acronyms_not_collected_on_table_result(self):
        resolver = AcronymResolver()
        dispatcher = _dispatcher(("Table", StaticProcessor(TABLE_MARKUP)), acronym_resolver=resolver)
        run(dispatcher.process("The Example Definition (ED) [[Table:1]]"))
        assert len(resolver) == 0


class TestErrorMarkers:
    def test_failure_replaced_with_marker(self, capsys):
        dispatcher = _dispatcher(("WorkItem", FailingProcessor(DataSourceError("down"))))
        result = run(dispatcher.process("See [[WorkItem:1]]."))
        assert result.text == "See [Error processing WorkItem tag]."
        assert "Error processing WorkItem tag: down" in capsys.readouterr().err

    def test_failure_does_not_stop_other_tags(self):
        dispatcher = _dispatcher(
            ("Bad", FailingProcessor()), ("Good", StaticProcessor("fine")))
        result = run(dispatcher.process("[[Bad:1]] [[Good:2]] [[Bad:3]]"))
        assert result.text == "[Error processing Bad tag] fine [Error processing Bad tag]"

    def test_marker_lands_on_failing_match(self):
        class EchoThenFail(TagProcessor):
            async def process_tag(self, content, context=None):
                if content == "1":
                    return "[[T:2]]"
                raise DataSourceError("down")

        dispatcher = _dispatcher(("T", EchoThenFail()))
        result = run(dispatcher.process("[[T:1]] then [[T:2]]"))
        assert result.text == "[[T:2]] then [Error processing T tag]"

    def test_malformed_table_markup_becomes_marker(self):
        dispatcher = _dispatcher(("Table", StaticProcessor("<w:tbl><w:tr>")))
        result = run(dispatcher.process("x [[Table:1]] y"))
        assert not result.is_table
        assert result.text == "x [Error processing Table tag] y"

    def test_unsupported_result_type_becomes_marker(self):
        dispatcher = _dispatcher(("T", StaticProcessor(42)))
        assert run(dispatcher.process("[[T:1]]")).text == "[Error processing T tag]"


class TestContextContract:
    def test_context_passed_only_when_requested(self):
        received = {}

        class Simple(TagProcessor):
            async def process_tag(self, content, *args):
                received['simple'] = args
                return ''

        class NeedsContext(TagProcessor):
            needs_context = True

            async def process_tag(self, content, context=None):
                received['context'] = context
                return ''

        context = ProcessorContext(shared={'k': 'v'})
        dispatcher = _dispatcher(("S", Simple()), ("C", NeedsContext()), context=context)
        run(dispatcher.process("[[S:1]][[C:1]]"))
        assert received['simple'] == ()
        assert received['context'] is context

    def test_default_context_carries_resolvers(self):
        acronyms = AcronymResolver()
        references = ReferenceResolver(r'DOC-\d+')
        dispatcher = _dispatcher(acronym_resolver=acronyms, reference_resolver=references)
        assert dispatcher.context.acronym_resolver is acronyms
        assert dispatcher.context.reference_resolver is references

    def test_references_scanned_on_text_result(self):
        references = ReferenceResolver(r'DOC-\d+')
        dispatcher = _dispatcher(reference_resolver=references)
        run(dispatcher.process("See DOC-12 and DOC-7."))
        assert "DOC-12" in references
        assert "DOC-7" in references
