"""
ABOUTME: Per-paragraph tag dispatch loop
ABOUTME: Substitutes text results in place; the first table result ends the paragraph
"""

import sys
from typing import List, Optional

from .acronyms import AcronymResolver
from .common import ERROR_MARKER_TEMPLATE, ProcessingResult, TagMatch, format_text_preview, tag_pattern
from .processors import ProcessorContext, TagProcessorRegistry
from .references import ReferenceResolver
from .table_builder import TableMaterializer


def find_tag_matches(text: str, tag_name: str) -> List[TagMatch]:
    """All non-overlapping `[[tag_name:content]]` occurrences, left to right."""
    return [
        TagMatch(tag_name, m.group(1), m.span(), m.group(0))
        for m in tag_pattern(tag_name).finditer(text)
    ]


class TagDispatcher:
    """
    Runs every registered processor over one paragraph's text.

    Tag names are visited in registry order and each tag's matches are
    processed sequentially. Processor failures are replaced by a visible
    marker so a single bad tag never aborts the paragraph.
    """

    def __init__(self, registry: TagProcessorRegistry, acronym_resolver: AcronymResolver,
                 materializer: Optional[TableMaterializer] = None,
                 context: Optional[ProcessorContext] = None,
                 reference_resolver: Optional[ReferenceResolver] = None,
                 verbose: bool = False):
        self.registry = registry
        self.acronym_resolver = acronym_resolver
        self.materializer = materializer or TableMaterializer()
        self.reference_resolver = reference_resolver
        self.context = context or ProcessorContext(
            acronym_resolver=acronym_resolver, reference_resolver=reference_resolver)
        self.verbose = verbose

    async def process(self, paragraph_text: str) -> ProcessingResult:
        text = paragraph_text or ''

        for tag_name, processor in self.registry.items():
            # Matches are located once per tag; each splice moves later spans
            shift = 0
            for match in find_tag_matches(text, tag_name):
                start, end = match.span[0] + shift, match.span[1] + shift
                try:
                    if processor.needs_context:
                        raw = await processor.process_tag(match.content, self.context)
                    else:
                        raw = await processor.process_tag(match.content)
                    result = ProcessingResult.coerce(raw)

                    if result.is_table:
                        if result.table is None:
                            result.table = self.materializer.parse_markup(result.markup)
                        if self.verbose:
                            print(f"  [{tag_name}] '{format_text_preview(match.content, 30)}' -> table")
                        return result

                    if self.verbose:
                        print(f"  [{tag_name}] '{format_text_preview(match.content, 30)}' -> "
                              f"'{format_text_preview(result.text)}'")
                    replacement = result.text
                except Exception as e:
                    print(f"Error processing {tag_name} tag: {e}", file=sys.stderr)
                    replacement = ERROR_MARKER_TEMPLATE.format(tag_name=tag_name)

                text = text[:start] + replacement + text[end:]
                shift += len(replacement) - (end - start)

        text = self.acronym_resolver.resolve_and_annotate(text)
        if self.reference_resolver is not None:
            text = self.reference_resolver.scan(text)
        return ProcessingResult.from_text(text)
