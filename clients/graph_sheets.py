"""
Worksheet used-range reads, optionally enriched with per-cell fill color.

Colors come from one ``/$batch`` sub-request per cell. Sub-request ids run
``"1".."N"`` in row-major order across all chunks, so colors are matched
back to cells by position no matter how the chunks are split.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence

from clients.graph import GraphClient

logger = logging.getLogger(__name__)

BATCH_LIMIT = 20


def column_letter(index: int) -> str:
    """1 → A, 26 → Z, 27 → AA, 702 → ZZ."""
    if index < 1:
        raise ValueError(f"column index must be >= 1, got {index}")
    letters = ""
    while index > 0:
        index, rem = divmod(index - 1, 26)
        letters = chr(65 + rem) + letters
    return letters


def chunked(items: Sequence[Any], size: int = BATCH_LIMIT) -> Iterator[Sequence[Any]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _worksheet_path(file_path: str, sheet: str) -> str:
    return f"/me/drive/root:{file_path}:/workbook/worksheets('{sheet}')"


def build_fill_requests(
    values: List[List[Any]], file_path: str, sheet: str
) -> List[Dict[str, str]]:
    requests = []
    request_id = 1
    base = _worksheet_path(file_path, sheet)
    for row_index, row in enumerate(values):
        for col_index, _ in enumerate(row):
            address = f"{column_letter(col_index + 1)}{row_index + 1}"
            requests.append(
                {
                    "id": str(request_id),
                    "method": "GET",
                    "url": f"{base}/range(address='{address}')/format/fill",
                }
            )
            request_id += 1
    return requests


def merge_colors(
    values: List[List[Any]], colors: Dict[str, Optional[str]]
) -> List[List[Dict[str, Any]]]:
    merged = []
    request_id = 1
    for row in values:
        cells = []
        for value in row:
            cells.append({"value": value, "color": colors.get(str(request_id))})
            request_id += 1
        merged.append(cells)
    return merged


class GraphSheetClient(GraphClient):

    async def get_used_range(self, file_path: str, sheet: str) -> List[List[Any]]:
        data = await self._request(
            "GET", f"{_worksheet_path(file_path, sheet)}/usedRange",
            error="Failed to fetch sheet data",
        )
        return data.get("values") or []

    async def _run_batch(self, chunk: Sequence[Dict[str, str]]) -> Dict[str, Optional[str]]:
        data = await self._request(
            "POST", "/$batch", json={"requests": list(chunk)}, error="Batch color lookup failed"
        )
        colors: Dict[str, Optional[str]] = {}
        for res in data.get("responses") or []:
            body = res.get("body") or {}
            colors[str(res.get("id"))] = body.get("color") if res.get("status", 200) < 400 else None
        return colors

    async def get_colored_range(self, file_path: str, sheet: str) -> List[List[Dict[str, Any]]]:
        values = await self.get_used_range(file_path, sheet)
        requests = build_fill_requests(values, file_path, sheet)
        if not requests:
            return []

        results = await asyncio.gather(*(self._run_batch(c) for c in chunked(requests)))
        colors: Dict[str, Optional[str]] = {}
        for part in results:
            colors.update(part)
        logger.debug("Merged %d cell colors from %d batches", len(colors), len(results))
        return merge_colors(values, colors)
