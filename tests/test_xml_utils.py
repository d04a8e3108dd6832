"""
Tests for xml_utils - sanitization, tag names and w:t whitespace handling
"""

from lxml import etree

import _tag_pipeline_helpers  # noqa: F401

from xml_utils import XML_SPACE_ATTR, local_name, sanitize_xml_string, set_preserve_space


class TestSanitizeXmlString:
    """Tests for sanitize_xml_string function"""

    def test_empty_and_none(self):
        assert sanitize_xml_string("") == ""
        assert sanitize_xml_string(None) is None

    def test_preserves_allowed_whitespace(self):
        """Tab, LF, and CR are preserved"""
        text = "Line1\tTabbed\nLine2\rLine3"
        assert sanitize_xml_string(text) == text

    def test_removes_control_characters(self):
        assert sanitize_xml_string("A\x00B\x01C\x07D\x0BE\x0CF\x1FG") == "ABCDEFG"

    def test_unicode_preserved(self):
        text = "Définition 世界 ✓"
        assert sanitize_xml_string(text) == text

    def test_work_item_text_with_stray_control_chars(self):
        text = "Requirement\x0b text from\x00 a work item"
        assert sanitize_xml_string(text) == "Requirement text from a work item"


class TestLocalName:
    def test_namespaced(self):
        assert local_name('{http://schemas.openxmlformats.org/wordprocessingml/2006/main}tbl') == 'tbl'

    def test_plain(self):
        assert local_name('tr') == 'tr'

    def test_non_string_tag(self):
        comment = etree.Comment('x')
        assert local_name(comment.tag) == ''


class TestSetPreserveSpace:
    def test_plain_text_no_attribute(self):
        t = etree.Element('t')
        set_preserve_space(t, "word")
        assert t.text == "word"
        assert t.get(XML_SPACE_ATTR) is None

    def test_leading_or_trailing_space(self):
        for text in (" lead", "trail ", "\tboth "):
            t = etree.Element('t')
            set_preserve_space(t, text)
            assert t.get(XML_SPACE_ATTR) == 'preserve'

    def test_sanitized(self):
        t = etree.Element('t')
        set_preserve_space(t, "a\x00b")
        assert t.text == "ab"

    def test_empty_text(self):
        t = etree.Element('t')
        set_preserve_space(t, "")
        assert not t.text
        assert t.get(XML_SPACE_ATTR) is None
