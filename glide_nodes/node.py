import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from . import options
from .client import GlideHttpService, TablesClient, TablesService, list_apps, list_tables
from .config import Settings, get_settings
from .credentials import GlideappsApi
from .errors import UnsupportedOperation, ValidationError
from .runtime import Context
from .schema import Credential, CredentialRef, NodeDescription, NodeProperty, Option, PropertyOption


logger = logging.getLogger(__name__)

ServiceFactory = Callable[[Credential, Context], TablesService]

_EXPRESSION_HINT = (
    'Choose from the list, or specify an ID using an <a href="https://docs.n8n.io/code/expressions/">expression</a>'
)


def _npm(**show) -> Dict[str, Dict[str, List[Any]]]:
    return {"show": {"apiType": ["npm"], **show}}


PROPERTIES = [
    NodeProperty(
        displayName="API Type",
        name="apiType",
        type="options",
        options=[
            PropertyOption(name="Big Tables API (OpenAPI)", value="openapi"),
            PropertyOption(name="Glide Tables API", value="npm"),
        ],
        default="npm",
        description="Choose which Glide API to use for this operation",
    ),
    NodeProperty(
        displayName="Usage Tips",
        name="usageTips",
        type="notice",
        default="",
        displayOptions=_npm(),
        description=(
            "<ul><li>Use <b>Row Limit</b> and <b>Row Search</b> to avoid loading too much data.</li>"
            "<li>Enable <b>Confirm Row Fetch</b> for large tables to prevent accidental data loads.</li>"
            "<li>Use <b>Column Type Filter</b> to show only certain column types.</li></ul>"
        ),
    ),
    NodeProperty(
        displayName="Resource",
        name="resource",
        type="options",
        required=True,
        default="table",
        options=[PropertyOption(name="Table", value="table"), PropertyOption(name="Row", value="row")],
        displayOptions=_npm(),
    ),
    NodeProperty(
        displayName="Operation",
        name="operation",
        type="options",
        required=True,
        default="tableGetAll",
        options=[
            PropertyOption(name="Get Many", value="tableGetAll", action="List many tables", resource="table"),
            PropertyOption(name="Create", value="tableCreate", action="Create a new table", resource="table"),
            PropertyOption(name="Delete", value="tableDelete", action="Delete a table", resource="table"),
            PropertyOption(name="Add", value="rowCreate", action="Add a new row", resource="row"),
            PropertyOption(name="Remove", value="rowDelete", action="Delete a row", resource="row"),
            PropertyOption(name="Get", value="rowGet", action="Get a single row", resource="row"),
            PropertyOption(name="Get All", value="rowGetAll", action="Get all rows", resource="row"),
            PropertyOption(name="Update", value="rowUpdate", action="Update a row", resource="row"),
        ],
        displayOptions=_npm(),
    ),
    NodeProperty(
        displayName="App Name or ID",
        name="appId",
        type="options",
        required=True,
        default="",
        typeOptions={"loadOptionsMethod": "getAppsDropdown"},
        displayOptions=_npm(resource=["table", "row"]),
        description=_EXPRESSION_HINT,
    ),
    NodeProperty(
        displayName="Table Name or ID",
        name="tableName",
        type="options",
        required=True,
        default="",
        typeOptions={"loadOptionsMethod": "getTablesDropdown", "loadOptionsDependsOn": ["appId"]},
        displayOptions=_npm(resource=["row"]),
        description=_EXPRESSION_HINT,
    ),
    NodeProperty(
        displayName="Row Name or ID",
        name="rowId",
        type="options",
        required=True,
        default="",
        typeOptions={
            "loadOptionsMethod": "getRowsDropdown",
            "loadOptionsDependsOn": ["appId", "tableName", "rowSearch", "rowLimit"],
        },
        displayOptions=_npm(resource=["row"], operation=["rowGet", "rowUpdate", "rowDelete"]),
        description=_EXPRESSION_HINT,
    ),
    NodeProperty(
        displayName="Row Data",
        name="rowData",
        type="json",
        required=True,
        default="{}",
        displayOptions=_npm(resource=["row"], operation=["rowCreate", "rowUpdate"]),
        description="Row data as JSON object with column names as keys",
    ),
    NodeProperty(
        displayName="Row Search",
        name="rowSearch",
        type="string",
        default="",
        displayOptions=_npm(resource=["row"], operation=["rowGet", "rowUpdate", "rowDelete"]),
        description="Filter the row dropdown by text",
    ),
    NodeProperty(
        displayName="Row Limit",
        name="rowLimit",
        type="number",
        default=options.DEFAULT_ROW_LIMIT,
        typeOptions={"minValue": options.ROW_LIMIT_MIN, "maxValue": options.ROW_LIMIT_MAX},
        displayOptions=_npm(resource=["row"]),
        description="Maximum number of rows to fetch for dropdowns, and the page size for Get All",
    ),
    NodeProperty(
        displayName="Confirm Row Fetch",
        name="confirmRowFetch",
        type="boolean",
        default=False,
        displayOptions=_npm(resource=["row"], operation=["rowGetAll"]),
        description="Whether to enable fetching rows for preview or selection if the table is large",
    ),
    NodeProperty(
        displayName="Column Name or ID",
        name="columnName",
        type="options",
        default="",
        typeOptions={
            "loadOptionsMethod": "getColumnsDropdown",
            "loadOptionsDependsOn": ["appId", "tableName", "columnTypeFilter"],
        },
        displayOptions=_npm(resource=["row"], operation=["rowGet", "rowUpdate"]),
        description=_EXPRESSION_HINT,
    ),
    NodeProperty(
        displayName="Column Type Filter",
        name="columnTypeFilter",
        type="multiOptions",
        default=[],
        options=[PropertyOption(name=t.capitalize(), value=t) for t in options.COLUMN_TYPES],
        displayOptions=_npm(resource=["row"], operation=["rowGet", "rowUpdate"]),
        description="Filter columns by type for the dropdown",
    ),
    NodeProperty(
        displayName="Row Name or ID",
        name="rowPreview",
        type="options",
        default="",
        typeOptions={
            "loadOptionsMethod": "getRowsWithConfirmationDropdown",
            "loadOptionsDependsOn": ["appId", "tableName", "confirmRowFetch", "rowLimit"],
        },
        displayOptions=_npm(resource=["row"], operation=["rowGetAll"]),
        description=_EXPRESSION_HINT,
    ),
]


def parse_row_data(value: Any) -> Dict[str, Any]:
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Row data is not valid JSON: {e.msg} (line {e.lineno} column {e.colno})") from e
        if not isinstance(parsed, dict):
            raise ValidationError("Row data must be a JSON object")
        return parsed
    raise ValidationError("Row data must be a JSON object or a JSON string")


def _is_true(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return value is True


def _as_record(result: Any) -> Dict[str, Any]:
    if isinstance(result, dict):
        return result
    return {"result": result}


class GlideNode:
    description = NodeDescription(
        displayName="Glide Apps",
        name="glide",
        description="Interact with Glide Apps API",
        credentials=[CredentialRef(name=GlideappsApi.name)],
        requestDefaults={
            "headers": {"Accept": "application/json", "Content-Type": "application/json"},
            "baseURL": "https://api.glideapps.com",
        },
        properties=PROPERTIES,
    )

    def __init__(self, service_factory: Optional[ServiceFactory] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.cred_type = GlideappsApi(self.settings)
        self.service_factory = service_factory or self._http_service

    def _http_service(self, credential: Credential, ctx: Context) -> TablesService:
        return GlideHttpService(ctx.http, self.cred_type.base_url(credential), self.cred_type.authenticate(credential))

    async def _service(self, ctx: Context) -> TablesService:
        data = await ctx.get_credentials(self.cred_type.name)
        return self.service_factory(self.cred_type.load(data), ctx)

    @staticmethod
    def _required(ctx: Context, name: str, index: int = 0) -> str:
        value = ctx.get_node_parameter(name, index, "")
        if value in ("", None):
            raise ValidationError(f"Parameter '{name}' is required")
        return str(value)

    async def _table_client(self, ctx: Context) -> TablesClient:
        return TablesClient(await self._service(ctx), self._required(ctx, "appId"))

    # load options

    def load_options_methods(self) -> Dict[str, Callable[[Context], Awaitable[List[Option]]]]:
        return {
            "getAppsDropdown": self.get_apps_dropdown,
            "getTablesDropdown": self.get_tables_dropdown,
            "getRowsDropdown": self.get_rows_dropdown,
            "getColumnsDropdown": self.get_columns_dropdown,
            "getRowsWithConfirmationDropdown": self.get_rows_with_confirmation_dropdown,
        }

    async def get_apps_dropdown(self, ctx: Context) -> List[Option]:
        async def _load():
            return await list_apps(await self._service(ctx))

        return await options.safe_options(_load)

    async def get_tables_dropdown(self, ctx: Context) -> List[Option]:
        async def _load():
            return await list_tables(await self._service(ctx), self._required(ctx, "appId"))

        return await options.safe_options(_load)

    async def get_rows_dropdown(self, ctx: Context) -> List[Option]:
        async def _load():
            client = await self._table_client(ctx)
            limit = options.clamp_row_limit(ctx.get_node_parameter("rowLimit", 0, options.DEFAULT_ROW_LIMIT))
            search = ctx.get_node_parameter("rowSearch", 0, "") or ""
            rows = await client.list_rows(self._required(ctx, "tableName"), limit)
            return options.filter_rows(rows, search, limit)

        return await options.safe_options(_load)

    async def get_columns_dropdown(self, ctx: Context) -> List[Option]:
        async def _load():
            client = await self._table_client(ctx)
            types = ctx.get_node_parameter("columnTypeFilter", 0, []) or []
            return options.filter_columns(await client.list_columns(self._required(ctx, "tableName")), types)

        return await options.safe_options(_load)

    async def get_rows_with_confirmation_dropdown(self, ctx: Context) -> List[Option]:
        confirmed = _is_true(ctx.get_node_parameter("confirmRowFetch", 0, False))

        async def _load():
            client = await self._table_client(ctx)
            limit = options.clamp_row_limit(ctx.get_node_parameter("rowLimit", 0, options.DEFAULT_ROW_LIMIT))
            return await client.preview_rows(self._required(ctx, "tableName"), limit)

        return await options.gated_rows(confirmed, _load)

    # execution

    async def execute(self, ctx: Context) -> List[Dict[str, Any]]:
        items = ctx.get_input_data()
        api_type = ctx.get_node_parameter("apiType", 0, "npm")
        if api_type != "npm":
            raise UnsupportedOperation("OpenAPI operations are not yet implemented in execute method. Use npm API type.")

        resource = ctx.get_node_parameter("resource", 0, "table")
        operation = ctx.get_node_parameter("operation", 0, "tableGetAll")
        handler = self._handler(resource, operation)
        logger.debug("executing %s/%s over %d items", resource, operation, len(items))

        out: List[Dict[str, Any]] = []
        service: Optional[TablesService] = None
        for i in range(len(items)):
            try:
                if service is None:
                    service = await self._service(ctx)
                client = TablesClient(service, self._required(ctx, "appId", i))
                out.append(_as_record(await handler(client, ctx, i)))
            except Exception as e:
                if ctx.continue_on_fail():
                    ctx.log(f"Glide {resource}/{operation}: item {i} failed, continuing: {e}")
                    out.append({"error": str(e)})
                    continue
                raise
        return out

    def _handler(self, resource: str, operation: str):
        handlers = {
            ("table", "tableGetAll"): self._table_get_all,
            ("table", "tableCreate"): self._not_implemented(operation),
            ("table", "tableDelete"): self._not_implemented(operation),
            ("row", "rowCreate"): self._row_create,
            ("row", "rowUpdate"): self._row_update,
            ("row", "rowDelete"): self._row_delete,
            ("row", "rowGet"): self._row_get,
            ("row", "rowGetAll"): self._row_get_all,
        }
        fn = handlers.get((resource, operation))
        if fn is not None:
            return fn
        if resource == "table":
            return self._unsupported(f"Table operation '{operation}' is not supported")
        if resource == "row":
            return self._unsupported(f"Row operation '{operation}' is not supported")
        return self._unsupported(f"Resource '{resource}' is not supported")

    @staticmethod
    def _unsupported(message: str):
        # raised per item so continue-on-fail applies
        async def _raise(client: TablesClient, ctx: Context, i: int):
            raise UnsupportedOperation(message)

        return _raise

    @classmethod
    def _not_implemented(cls, operation: str):
        return cls._unsupported(f"Table operation '{operation}' is not yet implemented")

    async def _table_get_all(self, client: TablesClient, ctx: Context, i: int):
        tables = await client.get_tables()
        return {"tables": [{"name": t.name, "id": t.id} for t in tables]}

    async def _row_create(self, client: TablesClient, ctx: Context, i: int):
        table = self._required(ctx, "tableName", i)
        column_values = parse_row_data(ctx.get_node_parameter("rowData", i, "{}"))
        return await client.add_row(table, column_values)

    async def _row_update(self, client: TablesClient, ctx: Context, i: int):
        table = self._required(ctx, "tableName", i)
        row_id = self._required(ctx, "rowId", i)
        column_values = parse_row_data(ctx.get_node_parameter("rowData", i, "{}"))
        return await client.update_row(table, column_values, row_id=row_id)

    async def _row_delete(self, client: TablesClient, ctx: Context, i: int):
        table = self._required(ctx, "tableName", i)
        return await client.delete_row(table, row_id=self._required(ctx, "rowId", i))

    async def _row_get(self, client: TablesClient, ctx: Context, i: int):
        row = await client.get_row(self._required(ctx, "tableName", i), self._required(ctx, "rowId", i))
        return row or {}

    async def _row_get_all(self, client: TablesClient, ctx: Context, i: int):
        table = self._required(ctx, "tableName", i)
        try:
            page_size = int(ctx.get_node_parameter("rowLimit", i, self.settings.row_page_size))
        except (TypeError, ValueError) as e:
            raise ValidationError("Parameter 'rowLimit' must be a number") from e
        rows = await client.get_all_rows(table, page_size, self.settings.max_pages)
        return {"rows": rows}
