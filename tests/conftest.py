"""
Pytest configuration and shared fixtures for the Glide node tests
"""
import os
import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

os.environ.setdefault("GLIDE_API_BASE", "https://api.glideapps.com")

from glide_nodes.client import TablesService  # noqa: E402
from glide_nodes.runtime import Context  # noqa: E402


class FakeTablesService(TablesService):
    """In-memory stand-in for the remote tables API.

    ``pages`` maps a table id to a list of row pages; the page token is the
    index of the next page as a string.
    """

    def __init__(self, apps=None, tables=None, pages=None, schemas=None, fail=None, mutation_result=None):
        self.apps = apps or []
        self.tables = tables or {}
        self.pages = pages or {}
        self.schemas = schemas or {}
        self.fail = fail or {}
        self.mutation_result = mutation_result if mutation_result is not None else [{"rowID": "new-row"}]
        self.calls = []
        self.mutations = []

    def _record(self, method, *args):
        self.calls.append((method, *args))
        if method in self.fail:
            raise self.fail[method]

    async def list_apps(self):
        self._record("list_apps")
        return self.apps

    async def list_tables(self, app_id):
        self._record("list_tables", app_id)
        return self.tables.get(app_id, [])

    async def get_schema(self, app_id, table_id):
        self._record("get_schema", app_id, table_id)
        return self.schemas.get(table_id)

    async def query_table(self, app_id, table_id, start_at=None):
        self._record("query_table", app_id, table_id, start_at)
        pages = self.pages.get(table_id, [])
        idx = int(start_at) if start_at else 0
        rows = pages[idx] if idx < len(pages) else []
        nxt = str(idx + 1) if idx + 1 < len(pages) else None
        return [{"rows": rows, "next": nxt}]

    async def query_sql(self, app_id, sql, params=None):
        self._record("query_sql", app_id, sql, params)
        return [{"rows": []}]

    async def mutate_tables(self, app_id, mutations):
        self._record("mutate_tables", app_id, mutations)
        self.mutations.extend(mutations)
        return self.mutation_result


TABLES = [
    {"id": "tbl1", "name": "Table One"},
    {"id": "tbl2", "name": "Table Two"},
]

ROWS = [
    {"$rowID": "Row1", "Name": "Alice", "Age": 31},
    {"$rowID": "Row2", "Name": "Bob", "Age": 27},
    {"$rowID": "row3", "Name": "Carol", "Age": 45},
]


@pytest.fixture
def fake_service():
    return FakeTablesService(
        apps=[{"id": "app1", "name": "App One"}, {"id": "app2", "name": "App Two"}],
        tables={"app1": list(TABLES)},
        pages={"tbl1": [list(ROWS)], "tbl2": []},
    )


@pytest.fixture
def make_ctx():
    def _make(parameters=None, items=None, continue_on_fail=False, credentials=None):
        creds = {"glideappsApi": {"apiToken": "tok_123"}} if credentials is None else credentials

        async def resolver(name, credential_id):
            return creds.get(name) or {}

        return Context(
            http=None,
            logger=None,
            cred_resolver=resolver,
            parameters=parameters or {},
            items=items,
            continue_on_fail=continue_on_fail,
        )

    return _make
