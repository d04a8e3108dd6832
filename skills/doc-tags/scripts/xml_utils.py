#!/usr/bin/env python3
"""
ABOUTME: XML utility functions for document processing
ABOUTME: Sanitizes text destined for w:t nodes and normalizes element tags
"""

XML_SPACE_ATTR = '{http://www.w3.org/XML/1998/namespace}space'


def sanitize_xml_string(text: str) -> str:
    """
    Remove control characters that are illegal in XML 1.0.

    XML 1.0 allows: #x9 (tab), #xA (LF), #xD (CR), and #x20-#xD7FF, #xE000-#xFFFD, #x10000-#x10FFFF
    This function removes all other control characters (0x00-0x08, 0x0B, 0x0C, 0x0E-0x1F).

    Args:
        text: Text that may contain control characters

    Returns:
        Sanitized text safe for XML. Returns input unchanged if not a non-empty string.
    """
    if not text or not isinstance(text, str):
        return text
    illegal_chars = ''.join(
        chr(c) for c in range(0x20)
        if c not in (0x09, 0x0A, 0x0D)
    )
    return text.translate(str.maketrans('', '', illegal_chars))


def local_name(tag) -> str:
    """
    Strip the namespace from an element tag.

    '{http://...}tbl' -> 'tbl', 'tbl' -> 'tbl'. Non-string tags (comments,
    processing instructions) return an empty string.
    """
    if not isinstance(tag, str):
        return ''
    return tag.split('}')[-1]


def set_preserve_space(t_elem, text: str) -> None:
    """Assign text to a w:t element, keeping leading/trailing whitespace."""
    t_elem.text = sanitize_xml_string(text)
    if text and (text[0].isspace() or text[-1].isspace()):
        t_elem.set(XML_SPACE_ATTR, 'preserve')
