"""
Tests for used-range reads and batched cell-color enrichment.
"""

import httpx
import pytest

from clients.graph_sheets import (
    BATCH_LIMIT,
    GraphSheetClient,
    build_fill_requests,
    chunked,
    column_letter,
    merge_colors,
)
from core.exceptions import UpstreamRequestError
from tests.conftest import json_of

FILE_PATH = "/Documents/Tracker.xlsx"
SHEET_PATH = "/me/drive/root:/Documents/Tracker.xlsx:/workbook/worksheets('Sheet1')"


def _echo_batch(request: httpx.Request) -> httpx.Response:
    """Answer every sub-request with a color derived from its cell address."""
    responses = []
    for sub in json_of(request)["requests"]:
        address = sub["url"].split("address='")[1].split("'")[0]
        responses.append({"id": sub["id"], "status": 200, "body": {"color": f"#{address}"}})
    return httpx.Response(200, json={"responses": list(reversed(responses))})


@pytest.fixture
def sheets(upstream):
    return GraphSheetClient("graph-token", "https://graph.test", transport=upstream.transport)


class TestColumnLetter:
    @pytest.mark.parametrize("index, letters", [
        (1, "A"), (26, "Z"), (27, "AA"), (52, "AZ"), (53, "BA"), (702, "ZZ"), (703, "AAA"),
    ])
    def test_letters(self, index, letters):
        assert column_letter(index) == letters

    def test_zero_rejected(self):
        with pytest.raises(ValueError):
            column_letter(0)


class TestBatchPlanning:
    def test_ids_are_row_major(self):
        values = [["a", "b", "c"], ["d", "e", "f"]]
        requests = build_fill_requests(values, FILE_PATH, "Sheet1")
        assert [r["id"] for r in requests] == ["1", "2", "3", "4", "5", "6"]
        assert requests[4]["url"].endswith("/range(address='B2')/format/fill")
        assert requests[0]["url"].startswith(SHEET_PATH)

    @pytest.mark.parametrize("cells, expected_chunks", [(1, 1), (20, 1), (21, 2), (45, 3)])
    def test_chunk_count(self, cells, expected_chunks):
        assert len(list(chunked(list(range(cells)), BATCH_LIMIT))) == expected_chunks

    def test_merge_keeps_shape_and_marks_missing(self):
        values = [["a", "b"], ["c", "d"]]
        merged = merge_colors(values, {"1": "#111", "2": "#222", "4": "#444"})
        assert merged == [
            [{"value": "a", "color": "#111"}, {"value": "b", "color": "#222"}],
            [{"value": "c", "color": None}, {"value": "d", "color": "#444"}],
        ]


class TestGraphSheetClient:
    @pytest.mark.asyncio
    async def test_used_range(self, sheets, upstream):
        upstream.add("GET", f"{SHEET_PATH}/usedRange", {"values": [["Name", "Due"], ["Ship", "Fri"]]})
        assert await sheets.get_used_range(FILE_PATH, "Sheet1") == [["Name", "Due"], ["Ship", "Fri"]]

    @pytest.mark.asyncio
    async def test_colors_merged_across_chunks(self, sheets, upstream):
        values = [[f"r{r}c{c}" for c in range(5)] for r in range(9)]
        upstream.add("GET", f"{SHEET_PATH}/usedRange", {"values": values})
        upstream.add("POST", "/$batch", handler=_echo_batch)

        grid = await sheets.get_colored_range(FILE_PATH, "Sheet1")

        assert upstream.count("POST", "/$batch") == 3
        assert len(grid) == 9 and all(len(row) == 5 for row in grid)
        assert grid[0][0] == {"value": "r0c0", "color": "#A1"}
        assert grid[8][4] == {"value": "r8c4", "color": "#E9"}
        assert all(len(json_of(c)["requests"]) <= BATCH_LIMIT for c in upstream.calls[1:])

    @pytest.mark.asyncio
    async def test_failed_sub_request_has_no_color(self, sheets, upstream):
        upstream.add("GET", f"{SHEET_PATH}/usedRange", {"values": [["x", "y"]]})
        upstream.add("POST", "/$batch", {"responses": [
            {"id": "1", "status": 200, "body": {"color": "#FFFF00"}},
            {"id": "2", "status": 404, "body": {"error": {"message": "nope"}}},
        ]})

        grid = await sheets.get_colored_range(FILE_PATH, "Sheet1")

        assert grid == [[{"value": "x", "color": "#FFFF00"}, {"value": "y", "color": None}]]

    @pytest.mark.asyncio
    async def test_empty_sheet_makes_no_batch_calls(self, sheets, upstream):
        upstream.add("GET", f"{SHEET_PATH}/usedRange", {"values": []})
        assert await sheets.get_colored_range(FILE_PATH, "Sheet1") == []
        assert upstream.count("POST", "/$batch") == 0

    @pytest.mark.asyncio
    async def test_batch_failure_fails_the_call(self, sheets, upstream):
        upstream.add("GET", f"{SHEET_PATH}/usedRange", {"values": [["x"]]})
        upstream.add("POST", "/$batch", {"error": {"message": "throttled"}}, status=429)

        with pytest.raises(UpstreamRequestError) as exc:
            await sheets.get_colored_range(FILE_PATH, "Sheet1")
        assert exc.value.status_code == 429
