#!/usr/bin/env python3
"""
ABOUTME: Async Azure DevOps work-item client used as the tag data source
ABOUTME: Query definitions, query execution, field batches and document text
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import httpx

from docx_tags.common import DataSourceError, InvalidArgumentError
from tag_config import AzureDevOpsConfig

API_VERSION = '7.0'
MAX_BATCH_SIZE = 200               # workitems endpoint limit per request
DEFAULT_TIMEOUT = 30.0


@dataclass
class QueryColumn:
    reference_name: str            # e.g. System.Title
    name: str                      # Display name, e.g. Title


@dataclass
class QueryDefinition:
    id: str
    name: str = ''
    columns: List[QueryColumn] = field(default_factory=list)


@dataclass
class QueryResult:
    item_references: List[int] = field(default_factory=list)


@dataclass
class WorkItem:
    id: int
    fields: Dict[str, Any] = field(default_factory=dict)


def validate_query_id(query_id: str) -> str:
    try:
        return str(uuid.UUID(str(query_id).strip()))
    except ValueError:
        raise InvalidArgumentError(f"Invalid query ID format: {query_id}") from None


class AzureDevOpsService:
    """
    Work-item tracking client.

    Use as an async context manager, or pass an existing httpx.AsyncClient
    (which the caller then owns).
    """

    def __init__(self, config: AzureDevOpsConfig, client: Optional[httpx.AsyncClient] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 timeout: float = DEFAULT_TIMEOUT, verbose: bool = False):
        if not config.is_configured():
            raise InvalidArgumentError("Azure DevOps organization, project and PAT are required")
        self.config = config
        self.verbose = verbose
        self.api_base = f"{config.connection_url()}/{config.project_name}/_apis/wit"
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            auth=httpx.BasicAuth("", config.personal_access_token), timeout=timeout,
            transport=transport)

    async def __aenter__(self) -> 'AzureDevOpsService':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        query = {'api-version': API_VERSION}
        query.update(params or {})
        url = f"{self.api_base}/{path}"
        try:
            response = await self.client.get(url, params=query)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise DataSourceError(
                f"Azure DevOps request failed ({e.response.status_code}): {path}") from e
        except httpx.HTTPError as e:
            raise DataSourceError(f"Azure DevOps request failed: {path}: {e}") from e
        except ValueError as e:
            raise DataSourceError(f"Invalid JSON from Azure DevOps: {path}") from e

    # ------------------------------------------------------------
    # Data source interface
    # ------------------------------------------------------------

    async def get_query_definition(self, query_id: str) -> QueryDefinition:
        query_id = validate_query_id(query_id)
        data = await self._get(f"queries/{query_id}", {'$expand': 'all'})
        columns = [
            QueryColumn(col.get('referenceName', ''), col.get('name') or col.get('referenceName', ''))
            for col in data.get('columns') or []
        ]
        if self.verbose:
            print(f"  [ADO] query {query_id}: {len(columns)} columns")
        return QueryDefinition(query_id, data.get('name', ''), columns)

    async def execute_query(self, query_id: str) -> QueryResult:
        query_id = validate_query_id(query_id)
        data = await self._get(f"wiql/{query_id}")

        ids: List[int] = []
        if data.get('workItems'):
            ids = [int(item['id']) for item in data['workItems']]
        elif data.get('workItemRelations'):
            # Link queries: collect distinct targets in order
            for relation in data['workItemRelations']:
                target = relation.get('target') or {}
                if 'id' in target and int(target['id']) not in ids:
                    ids.append(int(target['id']))

        if self.verbose:
            print(f"  [ADO] query {query_id}: {len(ids)} work items")
        return QueryResult(ids)

    async def get_item_fields(self, ids: Sequence[int],
                              field_names: Optional[Sequence[str]] = None) -> List[WorkItem]:
        ids = list(ids or [])
        if not ids:
            return []

        items: List[WorkItem] = []
        for start in range(0, len(ids), MAX_BATCH_SIZE):
            batch = ids[start:start + MAX_BATCH_SIZE]
            params = {'ids': ','.join(str(i) for i in batch)}
            if field_names:
                params['fields'] = ','.join(field_names)
            data = await self._get('workitems', params)
            items.extend(
                WorkItem(int(entry['id']), entry.get('fields') or {})
                for entry in data.get('value') or []
            )
        return items

    async def get_item_document_text(self, work_item_id: int) -> str:
        data = await self._get(f"workitems/{int(work_item_id)}", {'$expand': 'all'})
        value = (data.get('fields') or {}).get(self.config.document_field)
        return str(value) if value else ''
