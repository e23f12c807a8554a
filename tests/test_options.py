"""
Tests for the dropdown option helpers.
"""
import asyncio

from glide_nodes import options
from glide_nodes.schema import Option


def _opts(*names):
    return [Option(name=n, value=n) for n in names]


class TestSafeOptions:

    def test_passes_list_through(self):
        async def load():
            return _opts("a", "b")

        assert asyncio.run(options.safe_options(load)) == _opts("a", "b")

    def test_non_list_becomes_empty(self):
        async def load():
            return {"name": "not a list"}

        assert asyncio.run(options.safe_options(load)) == []

    def test_error_becomes_single_option(self):
        async def load():
            raise RuntimeError("boom")

        result = asyncio.run(options.safe_options(load))
        assert len(result) == 1
        assert result[0].value == ""
        assert result[0].name == "Error: boom"


class TestRowFilters:

    def test_search_is_case_insensitive_substring(self):
        rows = _opts("Row1", "Row2", "Other")
        assert [r.name for r in options.filter_rows(rows, "row1")] == ["Row1"]

    def test_no_match_is_empty_not_error(self):
        assert options.filter_rows(_opts("Row1", "Row2"), "zzz") == []

    def test_limit_truncates(self):
        rows = _opts(*[f"Row{i}" for i in range(10)])
        assert len(options.filter_rows(rows, "", 3)) == 3

    def test_limit_is_clamped(self):
        assert options.clamp_row_limit(0) == 1
        assert options.clamp_row_limit(500) == 200
        assert options.clamp_row_limit("15") == 15
        assert options.clamp_row_limit(None) == options.DEFAULT_ROW_LIMIT


class TestColumnFilter:

    def test_filters_by_type_bucket(self):
        cols = [
            Option(name="Name", value="Name", description="string"),
            Option(name="Age", value="Age", description="number"),
            Option(name="Blob", value="Blob"),
        ]
        assert [c.name for c in options.filter_columns(cols, ["text"])] == ["Name"]
        assert [c.name for c in options.filter_columns(cols, ["number", "other"])] == ["Age", "Blob"]

    def test_empty_filter_keeps_all(self):
        cols = _opts("a", "b")
        assert options.filter_columns(cols, []) == cols


class TestConfirmationGate:

    def test_unconfirmed_returns_advisory_without_calling(self):
        called = []

        async def load():
            called.append(True)
            return _opts(*[f"Row{i}" for i in range(50)])

        result = asyncio.run(options.gated_rows(False, load))
        assert result == [options.CONFIRMATION_REQUIRED]
        assert result[0].value == ""
        assert called == []

    def test_confirmed_calls_through(self):
        async def load():
            return _opts("Row1")

        assert asyncio.run(options.gated_rows(True, load)) == _opts("Row1")


def test_row_fetch_warning_mentions_limit():
    assert "first 25 rows" in options.row_fetch_warning(25)
