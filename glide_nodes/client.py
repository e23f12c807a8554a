import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as ShapeError

from .errors import NotFound, UpstreamError, ValidationError
from .options import safe_options
from .schema import AppInfo, ColumnInfo, Mutation, Option, QueryPage, TableInfo


logger = logging.getLogger(__name__)

ROW_ID_KEY = "$rowID"


class TablesService(ABC):
    """Raw access to the remote tables API. Payloads are returned as decoded JSON."""

    @abstractmethod
    async def list_apps(self) -> List[dict]:
        raise NotImplementedError

    @abstractmethod
    async def list_tables(self, app_id: str) -> List[dict]:
        raise NotImplementedError

    async def get_schema(self, app_id: str, table_id: str) -> Optional[dict]:
        """Return the schema payload, or None when the endpoint is unavailable."""
        return None

    @abstractmethod
    async def query_table(self, app_id: str, table_id: str, start_at: Optional[str] = None) -> List[dict]:
        raise NotImplementedError

    @abstractmethod
    async def query_sql(self, app_id: str, sql: str, params: Optional[list] = None) -> List[dict]:
        raise NotImplementedError

    @abstractmethod
    async def mutate_tables(self, app_id: str, mutations: List[dict]) -> Any:
        raise NotImplementedError


class GlideHttpService(TablesService):
    def __init__(self, http: httpx.AsyncClient, base_url: str, headers: Dict[str, str]):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.headers = {"Accept": "application/json", "Content-Type": "application/json", **headers}

    async def _request(self, method: str, path: str, body: Optional[dict] = None, allow_404: bool = False):
        url = self.base_url + path
        logger.debug("%s %s", method, url)
        try:
            r = await self.http.request(method, url, headers=self.headers, json=body)
            if allow_404 and r.status_code == 404:
                return None
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = _error_detail(e.response)
            raise UpstreamError(f"Request failed with status code {e.response.status_code}{': ' + detail if detail else ''}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(str(e) or e.__class__.__name__) from e
        if "application/json" in r.headers.get("content-type", ""):
            return r.json()
        return {"raw": r.text}

    async def list_apps(self) -> List[dict]:
        return _unwrap(await self._request("GET", "/apps"))

    async def list_tables(self, app_id: str) -> List[dict]:
        return _unwrap(await self._request("GET", f"/apps/{app_id}/tables"))

    async def get_schema(self, app_id: str, table_id: str) -> Optional[dict]:
        return await self._request("GET", f"/apps/{app_id}/tables/{table_id}/schema", allow_404=True)

    async def query_table(self, app_id: str, table_id: str, start_at: Optional[str] = None) -> List[dict]:
        query: Dict[str, Any] = {"tableName": table_id}
        if start_at:
            query["startAt"] = start_at
        return await self._request("POST", "/api/function/queryTables", {"appID": app_id, "queries": [query]})

    async def query_sql(self, app_id: str, sql: str, params: Optional[list] = None) -> List[dict]:
        query: Dict[str, Any] = {"sql": sql}
        if params:
            query["params"] = params
        return await self._request("POST", "/api/function/queryTables", {"appID": app_id, "queries": [query]})

    async def mutate_tables(self, app_id: str, mutations: List[dict]) -> Any:
        return await self._request("POST", "/api/function/mutateTables", {"appID": app_id, "mutations": mutations})


def _unwrap(payload: Any) -> List[dict]:
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        return payload["data"]
    if isinstance(payload, list):
        return payload
    raise UpstreamError("Unexpected response structure")


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, dict):
        err = data.get("error") or data.get("message")
        if isinstance(err, dict):
            return str(err.get("message") or err)
        if err:
            return str(err)
    return ""


def _first_page(result: Any) -> Optional[QueryPage]:
    if not isinstance(result, list) or not result or not isinstance(result[0], dict):
        return None
    try:
        return QueryPage.model_validate(result[0])
    except ShapeError:
        return None


def extract_mutation_errors(results: Any) -> List[str]:
    if not isinstance(results, list):
        return []
    out: List[str] = []
    for r in results:
        if isinstance(r, dict) and r.get("error"):
            err = r["error"]
            out.append(err if isinstance(err, str) else str(err))
    return out


async def list_apps(service: TablesService) -> List[Option]:
    async def _load():
        apps = [AppInfo.model_validate(a) for a in await service.list_apps()]
        return [Option(name=a.name or a.id, value=a.id) for a in apps]

    return await safe_options(_load)


async def list_tables(service: TablesService, app_id: str) -> List[Option]:
    async def _load():
        client = TablesClient(service, app_id)
        return [Option(name=t.name, value=t.id) for t in await client.get_tables()]

    return await safe_options(_load)


class TablesClient:
    """Table/row/column operations scoped to one app."""

    def __init__(self, service: TablesService, app_id: str):
        if not app_id:
            raise ValidationError("appId is required")
        self.service = service
        self.app_id = app_id

    async def get_tables(self) -> List[TableInfo]:
        raw = await self.service.list_tables(self.app_id)
        if not isinstance(raw, list):
            raise UpstreamError("No Tables Found or Invalid App ID.")
        try:
            return [TableInfo.model_validate(t) for t in raw]
        except ShapeError as e:
            raise UpstreamError(f"Invalid tables structure: {e.error_count()} errors") from e

    async def resolve_table(self, table: str) -> TableInfo:
        for t in await self.get_tables():
            if t.id == table or t.name == table:
                return t
        raise NotFound("Table not found")

    async def _query_rows(self, table_id: str, limit: int) -> List[dict]:
        page = _first_page(await self.service.query_table(self.app_id, table_id))
        if page is None:
            return []
        return page.rows[:limit]

    async def list_rows(self, table: str, limit: int = 100) -> List[Option]:
        t = await self.resolve_table(table)
        rows = await self._query_rows(t.id, limit)
        out: List[Option] = []
        for idx, row in enumerate(rows):
            row_id = row.get(ROW_ID_KEY)
            out.append(Option(name=row_id or f"Row {idx + 1}", value=row_id or ""))
        return out

    async def preview_rows(self, table: str, limit: int = 20) -> List[Option]:
        t = await self.resolve_table(table)
        rows = await self._query_rows(t.id, limit)
        return [
            Option(name=f"Row: {row[ROW_ID_KEY]}" if row.get(ROW_ID_KEY) else f"Row {idx + 1}", value=row.get(ROW_ID_KEY) or idx)
            for idx, row in enumerate(rows)
        ]

    async def list_columns(self, table: str) -> List[Option]:
        t = await self.resolve_table(table)
        schema = await self.service.get_schema(self.app_id, t.id)
        if schema is not None:
            data = schema.get("data") if isinstance(schema, dict) else None
            columns = data.get("columns") if isinstance(data, dict) else None
            if not isinstance(columns, list):
                raise UpstreamError("Invalid schema structure")
            try:
                parsed = [ColumnInfo.model_validate(c) for c in columns]
            except ShapeError as e:
                raise UpstreamError("Invalid schema structure") from e
            return [Option(name=c.name, value=c.name, description=c.type) for c in parsed]
        # no schema endpoint: infer from the first row
        rows = await self._query_rows(t.id, 1)
        if not rows:
            return []
        return [Option(name=k, value=k) for k in rows[0].keys() if k != ROW_ID_KEY]

    async def get_row(self, table: str, row_id: str) -> Optional[dict]:
        for row in await self._query_rows(table, 1000):
            if row.get(ROW_ID_KEY) == row_id or row.get("id") == row_id:
                return row
        return None

    async def get_all_rows(self, table: str, page_size: int = 100, max_pages: int = 10) -> List[dict]:
        all_rows: List[dict] = []
        start_at: Optional[str] = None
        for _ in range(max_pages):
            page = _first_page(await self.service.query_table(self.app_id, table, start_at))
            if page is None:
                break
            all_rows.extend(page.rows)
            if not page.next or len(page.rows) < page_size:
                break
            start_at = page.next
        return all_rows

    async def _mutate(self, mutations: List[Mutation], action: str) -> Any:
        try:
            return await self.service.mutate_tables(self.app_id, [m.to_wire() for m in mutations])
        except Exception as e:
            raise UpstreamError(f"Failed to {action}: {e}") from e

    async def add_row(self, table: str, column_values: Dict[str, Any]) -> Any:
        m = Mutation(kind="add-row-to-table", tableName=table, columnValues=column_values)
        return await self._mutate([m], "add row")

    async def update_row(
        self, table: str, column_values: Dict[str, Any], row_id: Optional[str] = None, row_index: Optional[int] = None
    ) -> Any:
        m = Mutation(kind="set-columns-in-row", tableName=table, columnValues=column_values, rowID=row_id, rowIndex=row_index)
        return await self._mutate([m], "set columns")

    async def delete_row(self, table: str, row_id: Optional[str] = None, row_index: Optional[int] = None) -> Any:
        m = Mutation(kind="delete-row", tableName=table, rowID=row_id, rowIndex=row_index)
        return await self._mutate([m], "delete row")

    async def run_mutations(self, mutations: List[dict]) -> Any:
        try:
            parsed = [Mutation.model_validate(m) for m in mutations]
        except ShapeError as e:
            raise ValidationError(f"Invalid mutation: {e.errors()[0]['msg']}") from e
        return await self._mutate(parsed, "run mutations")

    async def query_sql(self, sql: str, params: Optional[list] = None) -> Any:
        try:
            return await self.service.query_sql(self.app_id, sql, params)
        except Exception as e:
            raise UpstreamError(f"Failed to query table (SQL): {e}") from e
