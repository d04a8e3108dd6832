#!/usr/bin/env python3
"""
ABOUTME: Loads Azure DevOps and acronym configuration for the tag pipeline
ABOUTME: appsettings.json "AzureDevOps" section, ADO_* env overrides, acronyms.json
"""

import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

DEFAULT_SETTINGS_FILE = 'appsettings.json'
DEFAULT_ACRONYMS_FILE = 'acronyms.json'
DEFAULT_BASE_URL = 'https://dev.azure.com'
DEFAULT_DOCUMENT_FIELD = 'System.Description'

# Environment variable -> AzureDevOpsConfig attribute
ENV_OVERRIDES = {
    'ADO_ORGANIZATION': 'organization',
    'ADO_PAT': 'personal_access_token',
    'ADO_BASEURL': 'base_url',
    'ADO_PROJECTNAME': 'project_name',
    'ADO_FQDOCUMENTFIELDNAME': 'document_field',
}

# appsettings.json key -> AzureDevOpsConfig attribute
SETTINGS_KEYS = {
    'Organization': 'organization',
    'BaseUrl': 'base_url',
    'ProjectName': 'project_name',
    'FQDocumentFieldName': 'document_field',
    'ReferenceSourceWorkItem': 'reference_source_work_item',
    'ReferenceDocRegex': 'reference_doc_regex',
    'ReferenceFieldName': 'reference_field_name',
}


@dataclass
class AzureDevOpsConfig:
    organization: str = ''
    base_url: str = DEFAULT_BASE_URL
    project_name: str = ''
    document_field: str = DEFAULT_DOCUMENT_FIELD
    personal_access_token: str = ''
    reference_source_work_item: Optional[int] = None
    reference_doc_regex: str = ''
    reference_field_name: str = ''

    def connection_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.organization.strip('/')}"

    def is_configured(self) -> bool:
        return bool(self.organization and self.project_name and self.personal_access_token)

    def has_reference_source(self) -> bool:
        return bool(self.reference_doc_regex)


@dataclass
class AcronymConfig:
    known_acronyms: Dict[str, str] = field(default_factory=dict)
    ignored_acronyms: List[str] = field(default_factory=list)


def _read_json(path: Path, label: str) -> Optional[dict]:
    """Read a JSON object; warn and return None when missing or invalid."""
    if not path.exists():
        print(f"Warning: {label} file not found: {path}", file=sys.stderr)
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Warning: Could not read {label} file {path}: {e}", file=sys.stderr)
        return None
    if not isinstance(data, dict):
        print(f"Warning: {label} file {path} must contain a JSON object", file=sys.stderr)
        return None
    return data


def load_azure_devops_config(settings_path: Optional[str] = None,
                             environ: Optional[Mapping[str, str]] = None) -> AzureDevOpsConfig:
    """
    Build the Azure DevOps configuration.

    Values from the "AzureDevOps" section of the settings file are applied
    first, then non-empty ADO_* environment variables. The PAT is read from
    the environment only.
    """
    environ = os.environ if environ is None else environ
    config = AzureDevOpsConfig()

    path = Path(settings_path or DEFAULT_SETTINGS_FILE)
    data = _read_json(path, 'settings') if settings_path or path.exists() else None
    section = (data or {}).get('AzureDevOps') or {}
    for key, attr in SETTINGS_KEYS.items():
        value = section.get(key)
        if value in (None, ''):
            continue
        if attr == 'reference_source_work_item':
            try:
                value = int(value)
            except (TypeError, ValueError):
                print(f"Warning: Ignoring non-numeric {key}: {value!r}", file=sys.stderr)
                continue
        setattr(config, attr, value)

    for env_name, attr in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            setattr(config, attr, value)

    return config


def load_acronym_config(path: Optional[str] = None) -> AcronymConfig:
    """Load acronyms.json; a missing or unreadable file yields an empty config."""
    data = _read_json(Path(path or DEFAULT_ACRONYMS_FILE), 'acronyms')
    if data is None:
        return AcronymConfig()

    known = data.get('KnownAcronyms') or {}
    ignored = data.get('IgnoredAcronyms') or []
    if not isinstance(known, dict) or not isinstance(ignored, list):
        print(f"Warning: Unexpected acronym configuration layout in {path}", file=sys.stderr)
        return AcronymConfig()

    return AcronymConfig(
        known_acronyms={str(k): str(v) for k, v in known.items()},
        ignored_acronyms=[str(symbol) for symbol in ignored],
    )
