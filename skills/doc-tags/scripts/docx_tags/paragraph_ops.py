"""Paragraph-level read/write helpers for Word XML trees."""

import copy
from typing import Iterator, List

from docx.oxml import OxmlElement
from docx.oxml.ns import qn

from xml_utils import set_preserve_space

LIST_BULLET = '•'
LIST_BASE_INDENT = 720             # twips
LIST_LEVEL_INDENT = 360            # twips per nesting level

MC_NAMESPACE = 'http://schemas.openxmlformats.org/markup-compatibility/2006'

# Inline wrappers whose runs belong to the paragraph itself
RUN_CONTAINERS = frozenset(qn(tag) for tag in (
    'w:hyperlink', 'w:ins', 'w:smartTag', 'w:fldSimple',
    'w:customXml', 'w:sdt', 'w:sdtContent',
))

# Run children that carry graphics (and possibly text boxes)
DRAWING_TAGS = frozenset((
    qn('w:drawing'), qn('w:pict'), qn('w:object'),
    f'{{{MC_NAMESPACE}}}AlternateContent',
))

RUN_TEXT_TAGS = frozenset((qn('w:t'), qn('w:tab'), qn('w:br')))


class DocxParagraphMixin:
    def _body_paragraphs(self, body_elem) -> List:
        """Snapshot of body-level w:p children in document order."""
        return [child for child in body_elem if child.tag == qn('w:p')]

    def _paragraph_runs(self, parent) -> Iterator:
        """
        The paragraph's own w:r elements in document order.

        Descends into hyperlinks, insertions, smart tags and content
        controls but never into a run, so text-box paragraphs anchored in a
        drawing are not treated as part of this paragraph.
        """
        for child in parent:
            if child.tag == qn('w:r'):
                yield child
            elif child.tag in RUN_CONTAINERS:
                yield from self._paragraph_runs(child)

    @staticmethod
    def _is_drawing_run(elem) -> bool:
        return elem.tag == qn('w:r') and any(child.tag in DRAWING_TAGS for child in elem)

    def _paragraph_text(self, para_elem) -> str:
        """
        Visible text of a paragraph.

        Collects w:t text from the paragraph's own runs, w:tab as '\\t' and
        text-wrapping w:br as '\\n'. Page and column breaks are layout only
        and skipped.
        """
        parts = []
        for run in self._paragraph_runs(para_elem):
            for elem in run:
                if elem.tag == qn('w:t'):
                    parts.append(elem.text or '')
                elif elem.tag == qn('w:tab'):
                    parts.append('\t')
                elif elem.tag == qn('w:br'):
                    br_type = elem.get(qn('w:type'))
                    if br_type in (None, 'textWrapping'):
                        parts.append('\n')
        return ''.join(parts)

    def _build_run(self, text: str):
        """One w:r holding text; newlines become w:br."""
        run = OxmlElement('w:r')
        for index, line in enumerate(text.split('\n')):
            if index:
                run.append(OxmlElement('w:br'))
            if line:
                t = OxmlElement('w:t')
                set_preserve_space(t, line)
                run.append(t)
        return run

    def _replace_paragraph_text(self, para_elem, text: str) -> None:
        """
        Replace all inline content with one run of text.

        Paragraph properties (style, numbering, alignment) and runs holding
        drawings are kept, minus any text of their own. Run formatting,
        hyperlinks and bookmarks are discarded. The new run takes the place
        of the first removed element.
        """
        insert_at = None
        for child in list(para_elem):
            if child.tag == qn('w:pPr'):
                continue
            if self._is_drawing_run(child):
                for elem in list(child):
                    if elem.tag in RUN_TEXT_TAGS:
                        child.remove(elem)
                continue
            if insert_at is None:
                insert_at = para_elem.index(child)
            para_elem.remove(child)
        if text:
            run = self._build_run(text)
            if insert_at is None:
                para_elem.append(run)
            else:
                para_elem.insert(insert_at, run)

    def _build_paragraph(self, text: str, ppr_source=None):
        """New w:p with text, optionally copying another paragraph's pPr."""
        p = OxmlElement('w:p')
        if ppr_source is not None:
            ppr = ppr_source.find(qn('w:pPr'))
            if ppr is not None:
                p.append(copy.deepcopy(ppr))
        if text:
            p.append(self._build_run(text))
        return p

    def _build_list_paragraph(self, level: int, text: str):
        """Bulleted paragraph indented by nesting level."""
        p = OxmlElement('w:p')
        ppr = OxmlElement('w:pPr')
        ind = OxmlElement('w:ind')
        ind.set(qn('w:left'), str(LIST_BASE_INDENT + level * LIST_LEVEL_INDENT))
        ind.set(qn('w:hanging'), str(LIST_LEVEL_INDENT))
        ppr.append(ind)
        p.append(ppr)
        p.append(self._build_run(f"{LIST_BULLET} {text}"))
        return p

    def _replace_with_elements(self, para_elem, new_elements: List) -> None:
        """Insert elements, in order, at the paragraph's position and drop it."""
        for elem in new_elements:
            para_elem.addprevious(elem)
        para_elem.getparent().remove(para_elem)
