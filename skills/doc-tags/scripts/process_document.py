#!/usr/bin/env python3
"""
ABOUTME: Replaces [[Tag:content]] placeholders in a Word document
ABOUTME: Work items and queries come from Azure DevOps; acronyms are collected locally
"""

import argparse
import asyncio
import re
import sys
from pathlib import Path
from typing import List

from docx import Document

from azure_devops import AzureDevOpsService
from docx_tags.acronyms import AcronymResolver
from docx_tags.applier import ParagraphOutcome, TagDocumentProcessor
from docx_tags.common import DataSourceError, format_text_preview
from docx_tags.dispatcher import TagDispatcher
from docx_tags.processors import ProcessorContext, build_default_registry
from docx_tags.references import ReferenceResolver
from html_converter import HtmlConverter
from tag_config import load_acronym_config, load_azure_devops_config

SAMPLE_PARAGRAPHS = [
    "Sample Document for Tag Processing",
    "",
    "Work Item Example:",
    "[[WorkItem:1234]]",
    "",
    "Query Results Example:",
    "[[QueryID:12345678-1234-1234-1234-123456789ABC]]",
    "",
    "Acronym Examples:",
    "The Application Programming Interface (API) is used for integration.",
    "The Graphical User Interface (GUI) provides user interaction.",
    "",
    "Acronym Table:",
    "[[AcronymTable:true]]",
]


def create_sample_document(path: str) -> Path:
    """Write a small document exercising every built-in tag."""
    doc = Document()
    for text in SAMPLE_PARAGRAPHS:
        doc.add_paragraph(text)
    output = Path(path)
    doc.save(str(output))
    return output


async def load_reference_resolver(config, data_source, verbose: bool = False):
    """Reference resolver from settings, or None when no reference regex is configured."""
    if not config.has_reference_source():
        return None
    try:
        resolver = ReferenceResolver(config.reference_doc_regex, verbose=verbose)
    except re.error as e:
        print(f"Warning: Invalid ReferenceDocRegex, reference tracking disabled: {e}",
              file=sys.stderr)
        return None

    if data_source is not None and config.reference_source_work_item and config.reference_field_name:
        try:
            await resolver.load_known_references(
                data_source, config.reference_source_work_item, config.reference_field_name)
        except DataSourceError as e:
            print(f"Warning: Could not load known reference documents: {e}", file=sys.stderr)
    return resolver


async def run(args) -> List[ParagraphOutcome]:
    acronym_config = load_acronym_config(args.acronyms)
    acronym_resolver = AcronymResolver(
        acronym_config.known_acronyms, acronym_config.ignored_acronyms, verbose=args.verbose)
    print(f"Loaded {len(acronym_config.known_acronyms)} known acronyms and "
          f"{len(acronym_config.ignored_acronyms)} ignored acronyms")

    ado_config = load_azure_devops_config(args.settings)
    data_source = None
    if args.offline:
        print("Offline mode: acronym processing only.")
    elif not ado_config.is_configured():
        print("Warning: Azure DevOps integration not available "
              "(set ADO_ORGANIZATION, ADO_PROJECTNAME and ADO_PAT).", file=sys.stderr)
        print("Continuing with limited functionality (acronym processing only).", file=sys.stderr)
    else:
        data_source = AzureDevOpsService(ado_config, verbose=args.verbose)
        print(f"Using Azure DevOps: {ado_config.connection_url()}/{ado_config.project_name}")

    converter = HtmlConverter(verbose=args.verbose)
    try:
        reference_resolver = await load_reference_resolver(ado_config, data_source, args.verbose)
        registry = build_default_registry(
            acronym_resolver, data_source=data_source, converter=converter,
            reference_resolver=reference_resolver)

        output_path = args.output or TagDocumentProcessor.default_output_path(args.source)
        context = ProcessorContext(
            output_dir=Path(output_path).resolve().parent,
            acronym_resolver=acronym_resolver,
            reference_resolver=reference_resolver,
        )
        dispatcher = TagDispatcher(
            registry, acronym_resolver, context=context,
            reference_resolver=reference_resolver, verbose=args.verbose)
        processor = TagDocumentProcessor(dispatcher, converter=converter, verbose=args.verbose)

        print(f"Source file: {args.source}")
        print(f"Output to: {output_path}")
        print(f"Tags: {', '.join(registry.tag_names)}")
        if args.verbose:
            print("-" * 50)

        return await processor.process_document(args.source, output_path)
    finally:
        if data_source is not None:
            await data_source.aclose()


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Replace [[Tag:content]] placeholders in a Word document"
    )
    parser.add_argument('source', help='Source .docx file (or sample path with --create-sample)')
    parser.add_argument('output', nargs='?', help='Output file path (default: <source>_processed.docx)')
    parser.add_argument('--settings', help='Settings file with an "AzureDevOps" section '
                                           '(default: appsettings.json if present)')
    parser.add_argument('--acronyms', help='Acronym configuration file (default: acronyms.json)')
    parser.add_argument('--offline', action='store_true',
                        help='Do not contact Azure DevOps; process acronym tags only')
    parser.add_argument('--create-sample', action='store_true',
                        help='Write a sample document with tags to SOURCE and exit')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Verbose output')

    args = parser.parse_args()

    try:
        if args.create_sample:
            path = create_sample_document(args.source)
            print(f"Sample document created at: {path}")
            return 0

        outcomes = asyncio.run(run(args))

        changed = [o for o in outcomes if o.action != 'unchanged']
        counts = {action: sum(1 for o in changed if o.action == action)
                  for action in ('text', 'table', 'mixed')}
        if changed and not args.verbose:
            print("\nUpdated paragraphs:")
            for outcome in changed:
                print(f"  - [{outcome.index}] {outcome.action}: {format_text_preview(outcome.preview, 50)}")

        print("-" * 50)
        print(f"Completed: {len(outcomes)} paragraphs, {counts['text']} text, "
              f"{counts['table']} table, {counts['mixed']} mixed")
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
