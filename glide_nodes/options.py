"""Dropdown population helpers.

Everything here feeds the host's load-options pass, which must never abort:
failures come back as a single ``Error: ...`` option with an empty value.
"""
import logging
from typing import Awaitable, Callable, Iterable, List, Sequence

from .schema import Option


logger = logging.getLogger(__name__)

ROW_LIMIT_MIN = 1
ROW_LIMIT_MAX = 200
DEFAULT_ROW_LIMIT = 20
COLUMN_TYPES = ("boolean", "date", "number", "other", "text")
CONFIRMATION_REQUIRED = Option(name="⚠️ Please Enable Confirmation to Fetch Rows.", value="")

# column type names reported by the schema endpoint, folded into the filter buckets
_TYPE_BUCKETS = {
    "string": "text",
    "text": "text",
    "uri": "text",
    "email-address": "text",
    "phone-number": "text",
    "number": "number",
    "boolean": "boolean",
    "date": "date",
    "date-time": "date",
    "dateTime": "date",
}


def error_option(err: BaseException) -> Option:
    return Option(name=f"Error: {err}", value="")


async def safe_options(fn: Callable[[], Awaitable[Sequence[Option]]]) -> List[Option]:
    try:
        result = await fn()
    except Exception as e:
        logger.warning("option list failed: %s", e)
        return [error_option(e)]
    return list(result) if isinstance(result, list) else []


def clamp_row_limit(limit) -> int:
    try:
        n = int(limit)
    except (TypeError, ValueError):
        return DEFAULT_ROW_LIMIT
    return max(ROW_LIMIT_MIN, min(ROW_LIMIT_MAX, n))


def filter_rows(rows: Iterable[Option], search: str = "", limit=None) -> List[Option]:
    out = list(rows)
    if search:
        needle = search.lower()
        out = [r for r in out if needle in (r.name or "").lower()]
    if limit is not None:
        out = out[: clamp_row_limit(limit)]
    return out


def filter_columns(columns: Iterable[Option], types: Sequence[str]) -> List[Option]:
    cols = list(columns)
    if not types:
        return cols
    wanted = set(types)
    return [c for c in cols if _TYPE_BUCKETS.get(c.description or "", "other") in wanted]


async def gated_rows(confirmed: bool, fn: Callable[[], Awaitable[Sequence[Option]]]) -> List[Option]:
    """Row preview that only touches the service once the user has confirmed."""
    if not confirmed:
        return [CONFIRMATION_REQUIRED]
    return await safe_options(fn)


def row_fetch_warning(limit: int) -> str:
    return (
        f"⚠️ Fetching rows may return a large amount of data. Only the first {limit} rows will be shown. "
        "Use filters or limits to avoid performance issues."
    )
