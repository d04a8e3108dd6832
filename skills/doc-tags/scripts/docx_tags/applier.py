"""Document pass: dispatch every body paragraph and write the results back."""

import shutil
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from html_converter import HtmlConverter, strip_html
from text_segmenter import BlockKind, TextSegmenter

from .common import DocumentIOError, InvalidArgumentError, format_text_preview
from .dispatcher import TagDispatcher
from .paragraph_ops import DocxParagraphMixin


@dataclass
class ParagraphOutcome:
    """What happened to one body paragraph"""
    index: int                   # Position among body paragraphs (0-based, pre-mutation)
    action: str                  # 'unchanged' | 'text' | 'table' | 'mixed'
    preview: str = ''


class TagDocumentProcessor(DocxParagraphMixin):
    def __init__(self, dispatcher: TagDispatcher, converter: Optional[HtmlConverter] = None,
                 verbose: bool = False):
        self.dispatcher = dispatcher
        self.converter = converter or HtmlConverter()
        self.materializer = dispatcher.materializer
        self.segmenter = TextSegmenter()
        self.verbose = verbose

        self.doc = None
        self.body_elem = None
        self.outcomes: List[ParagraphOutcome] = []

    @staticmethod
    def default_output_path(source_path) -> Path:
        source = Path(source_path)
        return source.with_stem(source.stem + '_processed')

    async def process_document(self, source_path, output_path=None) -> List[ParagraphOutcome]:
        """
        Copy the source package, process the copy in place and save it.

        Raises:
            DocumentIOError: copy, open or save failed
        """
        source = Path(source_path)
        output = Path(output_path) if output_path else self.default_output_path(source)

        try:
            if source.resolve() != output.resolve():
                shutil.copyfile(source, output)
        except OSError as e:
            raise DocumentIOError(f"Cannot copy {source} to {output}: {e}") from e

        try:
            self.doc = Document(str(output))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, OSError) as e:
            raise DocumentIOError(f"Cannot open document {output}: {e}") from e

        self.body_elem = self.doc.element.body
        outcomes = await self.process_body(self.body_elem)

        try:
            self.doc.save(str(output))
        except OSError as e:
            raise DocumentIOError(f"Cannot save document {output}: {e}") from e

        if self.verbose:
            print(f"Saved: {output}")
        return outcomes

    async def process_body(self, body_elem) -> List[ParagraphOutcome]:
        """Process a snapshot of body-level paragraphs in document order."""
        self.outcomes = []
        for index, para in enumerate(self._body_paragraphs(body_elem)):
            original = self._paragraph_text(para)
            result = await self.dispatcher.process(original)

            if result.is_table:
                self._replace_with_elements(para, [result.table])
                outcome = ParagraphOutcome(index, 'table', format_text_preview(original))
            elif result.text == original:
                outcome = ParagraphOutcome(index, 'unchanged')
            elif self.segmenter.has_structured_content(result.text):
                self._replace_with_elements(para, self._build_mixed_content(result.text, para))
                outcome = ParagraphOutcome(index, 'mixed', format_text_preview(result.text))
            else:
                self._replace_paragraph_text(para, result.text)
                outcome = ParagraphOutcome(index, 'text', format_text_preview(result.text))

            if self.verbose and outcome.action != 'unchanged':
                print(f"[Paragraph {index}] {outcome.action}: {outcome.preview}")
            self.outcomes.append(outcome)
        return self.outcomes

    def _build_mixed_content(self, text: str, para) -> List:
        """
        Turn text with embedded HTML tables/lists into body elements.

        Text blocks keep the original paragraph properties. A table region
        without cells falls back to its stripped text.
        """
        elements = []
        for block in self.segmenter.segment(text):
            if block.kind is BlockKind.TABLE:
                try:
                    grid = self.converter.extract_table_grid(block.content)
                except InvalidArgumentError:
                    elements.append(self._build_paragraph(strip_html(block.content), para))
                    continue
                elements.append(self.materializer.build_from_grid(grid))
            elif block.kind is BlockKind.LIST:
                for level, item_text in self.converter.list_items(block.content):
                    elements.append(self._build_list_paragraph(level, item_text))
            else:
                elements.append(self._build_paragraph(block.content, para))
        return elements
