"""
ABOUTME: Tag processor contract, built-in variants and the ordered registry
ABOUTME: Variants: AcronymTable, WorkItem, QueryID, ReferenceTable
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .acronyms import AcronymResolver
from .common import InvalidArgumentError, ProcessingResult
from .references import ReferenceResolver
from .table_builder import TableMaterializer

NO_COLUMNS_MESSAGE = "No columns defined in query."
NO_RESULTS_MESSAGE = "No results found for query."

WORK_ITEM_ID_PATTERN = re.compile(r'[+-]?[0-9]+')


@dataclass
class ProcessorContext:
    """Session-wide services handed to processors that ask for them"""
    output_dir: Optional[Path] = None
    acronym_resolver: Optional[AcronymResolver] = None
    reference_resolver: Optional[ReferenceResolver] = None
    shared: Dict[str, Any] = field(default_factory=dict)


class TagProcessor:
    """
    Base class for tag processors.

    Subclasses implement the coroutine `process_tag(content, context=None)`
    and return a ProcessingResult or a string. Processors with
    `needs_context = True` are invoked with the session ProcessorContext;
    all others receive the content only.
    """

    needs_context = False

    async def process_tag(self, content: str, context: Optional[ProcessorContext] = None):
        raise NotImplementedError


def field_to_text(value) -> str:
    """Render a work-item field value as cell text (identity fields use displayName)."""
    if value is None:
        return ''
    if isinstance(value, dict):
        return str(value.get('displayName') or value.get('name') or '')
    return str(value)


# ============================================================
# Built-in variants
# ============================================================

class AcronymTableProcessor(TagProcessor):
    """Renders the acronyms resolved so far; the tag content is ignored."""

    def __init__(self, acronym_resolver: AcronymResolver):
        self.acronym_resolver = acronym_resolver

    async def process_tag(self, content: str, context: Optional[ProcessorContext] = None):
        grid = self.acronym_resolver.table_grid()
        if len(grid) <= 1:
            return ProcessingResult.from_text('')
        return ProcessingResult.from_markup(TableMaterializer.grid_to_markup(grid))


class WorkItemProcessor(TagProcessor):
    def __init__(self, data_source, converter):
        self.data_source = data_source
        self.converter = converter

    async def process_tag(self, content: str, context: Optional[ProcessorContext] = None):
        candidate = content.strip()
        if not WORK_ITEM_ID_PATTERN.fullmatch(candidate):
            raise InvalidArgumentError(f"Invalid work item ID: {content}")
        work_item_id = int(candidate)

        html = await self.data_source.get_item_document_text(work_item_id)
        if not html:
            return ProcessingResult.from_text('')
        return ProcessingResult.coerce(self.converter.html_to_plain_format(html))


class QueryProcessor(TagProcessor):
    """
    Runs a saved query and renders its results as a table.

    Only the fields referenced by the query's columns are fetched.
    """

    def __init__(self, data_source):
        self.data_source = data_source

    async def process_tag(self, content: str, context: Optional[ProcessorContext] = None):
        query_id = content.strip()
        definition = await self.data_source.get_query_definition(query_id)
        columns = list(definition.columns or [])
        if not columns:
            return ProcessingResult.from_text(NO_COLUMNS_MESSAGE)

        result = await self.data_source.execute_query(query_id)
        item_ids = list(result.item_references or [])
        if not item_ids:
            return ProcessingResult.from_text(NO_RESULTS_MESSAGE)

        reference_names = [column.reference_name for column in columns]
        items = await self.data_source.get_item_fields(item_ids, reference_names)

        grid: List[List[str]] = [[column.name for column in columns]]
        for item in items:
            grid.append([field_to_text(item.fields.get(name)) for name in reference_names])

        return ProcessingResult.from_markup(TableMaterializer.grid_to_markup(grid))


class ReferenceTableProcessor(TagProcessor):
    """Renders referenced documents collected so far (reads the context)."""

    needs_context = True

    async def process_tag(self, content: str, context: Optional[ProcessorContext] = None):
        resolver = context.reference_resolver if context else None
        if resolver is None or not len(resolver):
            return ProcessingResult.from_text('')
        return ProcessingResult.from_markup(TableMaterializer.grid_to_markup(resolver.table_grid()))


# ============================================================
# Registry
# ============================================================

class TagProcessorRegistry:
    """Tag name -> processor, iterated in registration order."""

    def __init__(self):
        self._processors: Dict[str, TagProcessor] = {}

    def register(self, tag_name: str, processor: TagProcessor) -> None:
        if not tag_name or ':' in tag_name:
            raise InvalidArgumentError(f"Invalid tag name: {tag_name!r}")
        self._processors[tag_name] = processor

    def get(self, tag_name: str) -> Optional[TagProcessor]:
        return self._processors.get(tag_name)

    def items(self) -> Iterator[Tuple[str, TagProcessor]]:
        return iter(list(self._processors.items()))

    @property
    def tag_names(self) -> List[str]:
        return list(self._processors)

    def __contains__(self, tag_name: str) -> bool:
        return tag_name in self._processors

    def __len__(self) -> int:
        return len(self._processors)


def build_default_registry(acronym_resolver: AcronymResolver, data_source=None,
                           converter=None,
                           reference_resolver: Optional[ReferenceResolver] = None
                           ) -> TagProcessorRegistry:
    """
    Register built-ins in dispatch order.

    AcronymTable always comes first. WorkItem and QueryID need a data source
    (WorkItem also needs a converter). ReferenceTable is added only when a
    reference resolver is configured.
    """
    registry = TagProcessorRegistry()
    registry.register('AcronymTable', AcronymTableProcessor(acronym_resolver))
    if data_source is not None:
        if converter is None:
            raise InvalidArgumentError("A markup converter is required with a data source")
        registry.register('WorkItem', WorkItemProcessor(data_source, converter))
        registry.register('QueryID', QueryProcessor(data_source))
    if reference_resolver is not None:
        registry.register('ReferenceTable', ReferenceTableProcessor())
    return registry
