"""
ABOUTME: Shared constants, result types and errors for the tag pipeline
ABOUTME: Tag/acronym patterns, ProcessingResult union, AcronymEntry records
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple


# ============================================================
# Constants
# ============================================================

NS = {
    'w': 'http://schemas.openxmlformats.org/wordprocessingml/2006/main',
}

# Table markup produced by table-generating processors starts with this
# literal. Plain strings beginning with it are classified as tables.
TABLE_MARKUP_PREFIX = '<w:tbl'

# Matches: (API), (GUI), (ED) - two or more uppercase letters in parentheses
ACRONYM_PATTERN = re.compile(r'\(([A-Z]{2,})\)')

# Visible placeholder left in the text when a tag fails
ERROR_MARKER_TEMPLATE = '[Error processing {tag_name} tag]'

_TAG_PATTERN_CACHE = {}


def tag_pattern(tag_name: str) -> 're.Pattern':
    """
    Compile the pattern for `[[<tag_name>:content]]`.

    Content is captured non-greedily, so the first `]]` closes the tag, and
    `.` does not cross newlines.
    """
    pattern = _TAG_PATTERN_CACHE.get(tag_name)
    if pattern is None:
        pattern = re.compile(r'\[\[' + re.escape(tag_name) + r':(.+?)\]\]')
        _TAG_PATTERN_CACHE[tag_name] = pattern
    return pattern


# ============================================================
# Errors
# ============================================================

class InvalidArgumentError(ValueError):
    """Malformed tag content or empty table input (caller error, not a fault)."""


class DataSourceError(RuntimeError):
    """A data-source call failed (transport, HTTP status or payload)."""


class MarkupParseError(ValueError):
    """Table markup could not be turned into a table."""

    def __init__(self, message: str, tag: Optional[str] = None, position: Any = None):
        details = []
        if tag:
            details.append(f"tag '{tag}'")
        if position is not None:
            details.append(f"position {position}")
        if details:
            message = f"{message} ({', '.join(details)})"
        super().__init__(message)
        self.tag = tag
        self.position = position


class DocumentIOError(OSError):
    """Copying, opening or saving the document package failed."""


# ============================================================
# Data Classes
# ============================================================

@dataclass(frozen=True)
class TagMatch:
    """One `[[Name:content]]` occurrence in paragraph text"""
    name: str                    # Tag name, e.g. WorkItem
    content: str                 # Captured content between ':' and ']]'
    span: Tuple[int, int]        # Half-open offsets in the scanned text
    raw: str                     # The literal matched substring


class ResultKind(Enum):
    TEXT = 'text'
    TABLE = 'table'


@dataclass
class ProcessingResult:
    """
    Outcome of a processor call or of a whole paragraph.

    A TABLE result carries either a materialized `table` element, the
    `markup` it will be parsed from, or both.
    """
    kind: ResultKind
    text: str = ''
    table: Any = None
    markup: Optional[str] = None

    @property
    def is_table(self) -> bool:
        return self.kind is ResultKind.TABLE

    @classmethod
    def from_text(cls, text: Optional[str]) -> 'ProcessingResult':
        return cls(ResultKind.TEXT, text=text or '')

    @classmethod
    def from_table(cls, table, markup: Optional[str] = None) -> 'ProcessingResult':
        return cls(ResultKind.TABLE, table=table, markup=markup)

    @classmethod
    def from_markup(cls, markup: str) -> 'ProcessingResult':
        return cls(ResultKind.TABLE, markup=markup)

    @classmethod
    def coerce(cls, value) -> 'ProcessingResult':
        """
        Normalize whatever a processor returned.

        - ProcessingResult: returned as is
        - str starting with TABLE_MARKUP_PREFIX: table markup
        - other str / None: text
        """
        if isinstance(value, ProcessingResult):
            return value
        if value is None:
            return cls.from_text('')
        if not isinstance(value, str):
            raise TypeError(f"Unsupported processor result type: {type(value).__name__}")
        if value.startswith(TABLE_MARKUP_PREFIX):
            return cls.from_markup(value)
        return cls.from_text(value)


class AcronymOrigin(Enum):
    KNOWN = 'known'                  # From configuration
    EXTRACTED = 'extracted'          # Heuristic backward extraction
    UNRESOLVED = 'unresolved'        # No definition found


@dataclass
class AcronymEntry:
    """Resolved acronym"""
    symbol: str
    definition: str = ''
    origin: AcronymOrigin = AcronymOrigin.UNRESOLVED


# ============================================================
# Helper Functions
# ============================================================

def format_text_preview(text: str, max_len: int = 60) -> str:
    """
    Format text for log output: remove newlines and truncate.

    Args:
        text: Text to format
        max_len: Maximum length before truncation

    Returns:
        Clean, truncated text with "..." suffix if truncated
    """
    clean = (text or '').replace('\n', ' ').replace('\r', '').replace('\t', ' ')
    while '  ' in clean:
        clean = clean.replace('  ', ' ')
    clean = clean.strip()
    if len(clean) > max_len:
        return clean[:max_len] + "..."
    return clean
