"""
Graph drive — locate a workbook in OneDrive and read one of its tables.

File discovery tries three strategies in order and stops at the first hit:

  1. Graph search on the user's drive for the exact file name.
  2. Depth-first walk of the user's own drive from root.
  3. Items shared with the user, descending into shared folders.

Walks are capped at ``drive_search_max_depth`` levels and keep a visited set,
so a folder reachable twice is only listed once. A hit is cached for
``file_location_ttl_seconds`` under ``(user_id, filename)``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Literal, Optional, Set, Tuple

from pydantic import BaseModel

from clients.graph import GraphClient
from config.settings import config
from core.cache import KeyValueStore
from core.exceptions import FileNotFoundInDrive, UpstreamRequestError

logger = logging.getLogger(__name__)

_ITEM_SELECT = "id,name,file,folder,parentReference,remoteItem"


class FileLocation(BaseModel):
    file_id: str
    drive_id: Optional[str] = None
    location: Literal["search", "own_drive", "shared"]
    path: str = ""
    from_cache: bool = False


def _drive_id_of(item: Dict[str, Any]) -> Optional[str]:
    return (item.get("parentReference") or {}).get("driveId")


def _escape_query(value: str) -> str:
    return value.replace("'", "''")


class GraphDriveClient(GraphClient):

    def __init__(self, *args: Any, max_depth: Optional[int] = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.max_depth = config.drive_search_max_depth if max_depth is None else max_depth

    # ── Listing ─────────────────────────────────────────────────────────

    async def list_children(
        self, folder_id: Optional[str] = None, drive_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        if drive_id:
            path = f"/drives/{drive_id}/items/{folder_id or 'root'}/children"
        elif folder_id:
            path = f"/me/drive/items/{folder_id}/children"
        else:
            path = "/me/drive/root/children"
        return await self._collect(
            path, {"$select": _ITEM_SELECT, "$top": 200}, error="Failed to list drive items"
        )

    # ── Discovery strategies ────────────────────────────────────────────

    async def search(self, filename: str) -> Optional[FileLocation]:
        items = await self._collect(
            f"/me/drive/root/search(q='{_escape_query(filename)}')",
            {"$select": _ITEM_SELECT},
        )
        for item in items:
            target = item.get("remoteItem") or item
            if item.get("name") == filename and "file" in target:
                parent = (target.get("parentReference") or {}).get("path", "")
                return FileLocation(
                    file_id=target["id"],
                    drive_id=_drive_id_of(target),
                    location="search",
                    path=f"{parent}/{filename}" if parent else filename,
                )
        return None

    async def _walk(
        self,
        filename: str,
        location: str,
        folder_id: Optional[str],
        drive_id: Optional[str],
        depth: int,
        path: str,
        visited: Set[Tuple[str, str]],
    ) -> Optional[FileLocation]:
        key = (drive_id or "me", folder_id or "root")
        if key in visited:
            return None
        visited.add(key)

        for child in await self.list_children(folder_id, drive_id):
            name = child.get("name")
            child_path = f"{path}/{name}"
            if name == filename and "file" in child:
                return FileLocation(
                    file_id=child["id"],
                    drive_id=_drive_id_of(child) or drive_id,
                    location=location,
                    path=child_path,
                )
            if "folder" in child and depth < self.max_depth:
                found = await self._walk(
                    filename, location, child["id"], drive_id, depth + 1, child_path, visited
                )
                if found:
                    return found
        return None

    async def walk_own_drive(self, filename: str) -> Optional[FileLocation]:
        return await self._walk(filename, "own_drive", None, None, 0, "", set())

    async def search_shared(self, filename: str) -> Optional[FileLocation]:
        shared = await self._collect("/me/drive/sharedWithMe")
        visited: Set[Tuple[str, str]] = set()
        for item in shared:
            remote = item.get("remoteItem") or item
            drive_id = _drive_id_of(remote)
            name = item.get("name") or remote.get("name")
            if name == filename and "file" in remote:
                return FileLocation(
                    file_id=remote["id"], drive_id=drive_id, location="shared", path=f"/{name}"
                )
            if "folder" in remote and drive_id:
                found = await self._walk(
                    filename, "shared", remote["id"], drive_id, 1, f"/{name}", visited
                )
                if found:
                    return found
        return None

    # ── Workbook ────────────────────────────────────────────────────────

    async def read_table(self, location: FileLocation, table: str) -> Dict[str, Any]:
        """
        Header row and data body of a workbook table, fetched concurrently.
        Either request failing fails the whole read.
        """
        if location.drive_id:
            item = f"/drives/{location.drive_id}/items/{location.file_id}"
        else:
            item = f"/me/drive/items/{location.file_id}"
        table_path = f"{item}/workbook/tables('{_escape_query(table)}')"

        header, body = await asyncio.gather(
            self._request("GET", f"{table_path}/headerRowRange", error="Failed to read table header"),
            self._request("GET", f"{table_path}/dataBodyRange", error="Failed to read table data"),
        )
        header_values = header.get("values") or [[]]
        headers = header_values[0] if header_values else []
        rows = body.get("values") or []
        return {
            "headers": headers,
            "rows": rows,
            "records": [dict(zip(headers, row)) for row in rows],
        }


def file_location_key(user_id: str, filename: str) -> str:
    return f"file_location:{user_id}:{filename}"


class FileLocator:
    """Cached multi-strategy discovery of a file for one user."""

    def __init__(
        self,
        drive: GraphDriveClient,
        store: KeyValueStore,
        *,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        self.drive = drive
        self.store = store
        self.ttl = config.file_location_ttl_seconds if ttl_seconds is None else ttl_seconds

    async def locate(self, user_id: str, filename: str, *, force: bool = False) -> FileLocation:
        key = file_location_key(user_id, filename)
        if not force:
            cached = self.store.get(key)
            if cached:
                location = FileLocation.model_validate(cached)
                location.from_cache = True
                return location

        strategies = (
            ("search", self.drive.search),
            ("own_drive", self.drive.walk_own_drive),
            ("shared", self.drive.search_shared),
        )
        for name, strategy in strategies:
            location = await strategy(filename)
            if location:
                logger.info("Located %s for user %s via %s", filename, user_id, name)
                self.store.put(key, location.model_dump(exclude={"from_cache"}), ttl=self.ttl)
                return location
            logger.debug("Strategy %s found no %s", name, filename)

        raise FileNotFoundInDrive(filename)

    def invalidate(self, user_id: str, filename: str) -> None:
        self.store.forget(file_location_key(user_id, filename))

    async def read_table(self, user_id: str, filename: str, table: str) -> Dict[str, Any]:
        """
        Read ``table`` from ``filename``. A cached location that no longer
        works is dropped and the file is located afresh, once.
        """
        location = await self.locate(user_id, filename)
        try:
            result = await self.drive.read_table(location, table)
        except UpstreamRequestError:
            if not location.from_cache:
                raise
            logger.info("Cached location for %s is stale; rediscovering", filename)
            self.invalidate(user_id, filename)
            location = await self.locate(user_id, filename, force=True)
            result = await self.drive.read_table(location, table)
        result["file"] = location.model_dump(exclude={"from_cache"})
        return result
