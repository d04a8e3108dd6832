"""
ABOUTME: Detects parenthesized acronyms in text and resolves their definitions
ABOUTME: Sources in order: words preceding the acronym, known table, unresolved
"""

import re
from typing import Dict, Iterable, List, Mapping, Optional

from .common import ACRONYM_PATTERN, AcronymEntry, AcronymOrigin

ACRONYM_TABLE_HEADER = ['Acronym', 'Definition']

_CAPITALIZED_WORD = re.compile(r'^[A-Z]')


def extract_preceding_definition(text: str, position: int) -> str:
    """
    Collect the run of capitalized words immediately before `position`.

    Words are scanned right to left. Lowercase words are skipped until the
    first capitalized word is found; after that, the first lowercase word
    ends the run.

        "the Example Definition (ED) was" , pos of "(ED)" -> "Example Definition"
    """
    words = text[:position].split()
    collected: List[str] = []
    for word in reversed(words):
        if _CAPITALIZED_WORD.match(word):
            collected.insert(0, word)
        elif collected:
            break
    return ' '.join(collected)


class AcronymResolver:
    """
    Per-session acronym map.

    Each symbol is resolved at most once for the lifetime of the resolver;
    later occurrences never overwrite the first resolution. Symbols in the
    ignore set are never recorded.
    """

    def __init__(self, known_acronyms: Optional[Mapping[str, str]] = None,
                 ignored_acronyms: Optional[Iterable[str]] = None,
                 verbose: bool = False):
        self.known_acronyms: Dict[str, str] = {
            symbol.upper(): definition
            for symbol, definition in (known_acronyms or {}).items()
        }
        self.ignored_acronyms = {symbol.upper() for symbol in (ignored_acronyms or ())}
        self.verbose = verbose
        self._entries: Dict[str, AcronymEntry] = {}

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, symbol: str) -> Optional[AcronymEntry]:
        return self._entries.get(symbol)

    @property
    def entries(self) -> List[AcronymEntry]:
        """Resolved entries in first-seen order"""
        return list(self._entries.values())

    def resolve_and_annotate(self, text: str) -> str:
        """
        Record every new `(XYZ)` acronym found in text.

        The text itself is returned unchanged; only the resolver state grows.
        """
        if not text:
            return text

        for match in ACRONYM_PATTERN.finditer(text):
            symbol = match.group(1)
            if symbol in self.ignored_acronyms or symbol in self._entries:
                continue
            self._entries[symbol] = self._resolve(symbol, text, match.start())

        return text

    def _resolve(self, symbol: str, text: str, position: int) -> AcronymEntry:
        definition = extract_preceding_definition(text, position)
        if definition:
            entry = AcronymEntry(symbol, definition, AcronymOrigin.EXTRACTED)
        elif self.known_acronyms.get(symbol):
            entry = AcronymEntry(symbol, self.known_acronyms[symbol], AcronymOrigin.KNOWN)
        else:
            entry = AcronymEntry(symbol, '', AcronymOrigin.UNRESOLVED)

        if self.verbose:
            print(f"  [Acronym] {symbol} = '{entry.definition}' ({entry.origin.value})")
        return entry

    def table_grid(self) -> List[List[str]]:
        """Header row plus one row per resolved symbol, sorted by symbol."""
        grid = [list(ACRONYM_TABLE_HEADER)]
        for symbol in sorted(self._entries):
            if symbol in self.ignored_acronyms:
                continue
            grid.append([symbol, self._entries[symbol].definition])
        return grid
