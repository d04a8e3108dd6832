"""
ABOUTME: Tracks reference-document numbers cited in paragraph text
ABOUTME: Titles come from a known list stored in a work-item field
"""

import re
from typing import Dict, List, Mapping, Optional

REFERENCE_TABLE_HEADER = ['Document Number', 'Document Title']

_HTML_TAG = re.compile(r'<.*?>')


def remove_html_tags(text: str) -> str:
    if not text:
        return text
    return _HTML_TAG.sub('', text).strip()


def parse_reference_list(source: str) -> Dict[str, str]:
    """
    Parse `number:title, number:title` into a mapping.

    Entries that do not split into exactly two parts on ':' are skipped.
    HTML tags are removed from both parts.
    """
    references: Dict[str, str] = {}
    if not source:
        return references
    for entry in source.split(','):
        parts = entry.split(':')
        if len(parts) != 2:
            continue
        number = remove_html_tags(parts[0])
        if number:
            references[number] = remove_html_tags(parts[1])
    return references


class ReferenceResolver:
    """
    Records each reference number matched by `pattern` once, with its
    known title or an empty title.
    """

    def __init__(self, pattern: str, known_references: Optional[Mapping[str, str]] = None,
                 verbose: bool = False):
        self.pattern = re.compile(pattern)
        self.known_references: Dict[str, str] = dict(known_references or {})
        self.verbose = verbose
        self._references: Dict[str, str] = {}

    def __contains__(self, reference: str) -> bool:
        return reference in self._references

    def __len__(self) -> int:
        return len(self._references)

    async def load_known_references(self, data_source, work_item_id: int, field_name: str) -> int:
        """
        Load the known reference list from a work-item field.

        Returns:
            Number of known references after loading
        """
        items = await data_source.get_item_fields([work_item_id], [field_name])
        if items:
            value = items[0].fields.get(field_name)
            self.known_references.update(parse_reference_list(str(value or '')))
        if self.verbose:
            print(f"Loaded {len(self.known_references)} known reference documents")
        return len(self.known_references)

    def scan(self, text: str) -> str:
        """Record references found in text; returns text unchanged."""
        if not text:
            return text
        for match in self.pattern.finditer(text):
            reference = match.group(0)
            if reference not in self._references:
                self._references[reference] = self.known_references.get(reference, '')
        return text

    def table_grid(self) -> List[List[str]]:
        grid = [list(REFERENCE_TABLE_HEADER)]
        grid.extend([number, self._references[number]] for number in sorted(self._references))
        return grid
