"""
ClickUp REST API v2 client.

Authenticates with the static personal API token from configuration (sent
as the raw ``Authorization`` header, no ``Bearer`` prefix). Every public
method is one call, or a short fixed sequence, plus reshaping.

Task classification is purely on ``task.status.type``: ``"closed"`` means
completed, everything else is open.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

from clients.base import ApiClient, error_body
from config.settings import config
from core.exceptions import (
    NoClosedStatusFound,
    NoOpenStatusFound,
    NotFoundError,
    UpstreamRequestError,
)

logger = logging.getLogger(__name__)

_NOT_ARCHIVED = {"archived": "false"}


# ── Pure helpers ─────────────────────────────────────────────────────────


def is_closed(task: Dict[str, Any]) -> bool:
    return ((task.get("status") or {}).get("type")) == "closed"


def partition_tasks(tasks: Iterable[Dict[str, Any]]) -> Tuple[List[Dict], List[Dict]]:
    """Split into (open, completed), preserving upstream order."""
    open_tasks: List[Dict] = []
    completed: List[Dict] = []
    for task in tasks:
        (completed if is_closed(task) else open_tasks).append(task)
    return open_tasks, completed


def due_day(task: Dict[str, Any], tz: tzinfo) -> Optional[date]:
    """Calendar day of the task's due date (ClickUp sends epoch millis as a string)."""
    raw = task.get("due_date")
    if raw in (None, ""):
        return None
    try:
        millis = int(raw)
    except (TypeError, ValueError):
        logger.debug("Ignoring unparseable due_date %r on task %s", raw, task.get("id"))
        return None
    return datetime.fromtimestamp(millis / 1000, tz).date()


def filter_due_window(
    tasks: Iterable[Dict[str, Any]],
    today: date,
    tz: tzinfo,
) -> List[Dict[str, Any]]:
    """Keep tasks due today, due tomorrow, or overdue. No due date → dropped."""
    tomorrow = today + timedelta(days=1)
    kept = []
    for task in tasks:
        day = due_day(task, tz)
        if day is None:
            continue
        if day == today or day == tomorrow or day < today:
            kept.append(task)
    return kept


def pick_closed_status(statuses: List[Dict[str, Any]]) -> Optional[str]:
    for status in statuses:
        if status.get("type") == "closed":
            return status.get("status")
    return None


def pick_open_status(statuses: List[Dict[str, Any]]) -> Optional[str]:
    """First non-closed status in the list's own order."""
    for status in statuses:
        if status.get("type") != "closed":
            return status.get("status")
    return None


def shape_task(task: Dict[str, Any]) -> Dict[str, Any]:
    status = task.get("status") or {}
    return {
        "id": task.get("id"),
        "name": task.get("name"),
        "description": task.get("description") or task.get("text_content") or "",
        "status": status.get("status"),
        "status_type": status.get("type"),
        "status_color": status.get("color"),
        "due_date": task.get("due_date"),
        "date_closed": task.get("date_closed"),
        "priority": (task.get("priority") or {}).get("priority"),
        "assignees": [
            {"id": a.get("id"), "username": a.get("username"), "email": a.get("email")}
            for a in task.get("assignees") or []
        ],
        "list_id": (task.get("list") or {}).get("id"),
        "url": task.get("url"),
    }


class ClickUpClient(ApiClient):
    service_name = "ClickUp"

    def __init__(
        self,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            base_url or config.clickup_base_api,
            {"Authorization": api_token if api_token is not None else config.clickup_api_token},
            transport=transport,
        )

    def _upstream_message(self, body: Any, fallback: str) -> str:
        if isinstance(body, dict) and body.get("err"):
            return str(body["err"])
        return fallback

    # ── Account / workspace ─────────────────────────────────────────────

    async def get_authorized_user(self) -> Dict[str, Any]:
        data = await self._request("GET", "/user", error="Failed to fetch ClickUp user")
        user = data.get("user") or {}
        return {
            "id": user.get("id"),
            "username": user.get("username"),
            "email": user.get("email"),
            "color": user.get("color"),
        }

    async def get_teams_raw(self) -> Tuple[int, Any]:
        """Upstream status and body, untouched."""
        async with self._client() as client:
            resp = await client.get("/team")
        return resp.status_code, error_body(resp)

    async def get_workspaces(self) -> Dict[str, Any]:
        data = await self._request("GET", "/team", error="Failed to fetch workspaces")
        teams = data.get("teams") or []
        if not teams:
            raise NotFoundError("No teams found", extra={"workspaces": []})
        return {
            "workspaces": [{"id": t.get("id"), "name": t.get("name")} for t in teams],
            "raw": data,
        }

    async def get_workspace_members(self, team_id: str) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET", f"/team/{team_id}", error="Failed to fetch workspace members"
        )
        members = (data.get("team") or {}).get("members")
        if members is None:
            raise NotFoundError(
                "No members found for this workspace",
                extra={"team_id": team_id, "members": []},
            )
        shaped = []
        for member in members:
            user = member.get("user") or {}
            if user.get("id") is None:
                continue
            shaped.append(
                {"id": user["id"], "username": user.get("username"), "email": user.get("email")}
            )
        return shaped

    async def get_spaces(self, team_id: str) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET", f"/team/{team_id}/space", params=_NOT_ARCHIVED,
            error="Failed to fetch spaces for workspace",
        )
        spaces = data.get("spaces")
        if spaces is None:
            raise NotFoundError(
                "No spaces found for this workspace",
                extra={"team_id": team_id, "spaces": []},
            )
        return [{"id": s.get("id"), "name": s.get("name")} for s in spaces]

    # ── Lists ───────────────────────────────────────────────────────────

    async def get_space_lists(
        self, space_id: str, *, with_task_counts: bool = False
    ) -> List[Dict[str, Any]]:
        """
        Folder lists (named ``"{folder}/{list}"``) followed by lists that sit
        directly under the space.
        """
        folders_data, lists_data = await asyncio.gather(
            self._request(
                "GET", f"/space/{space_id}/folder", params=_NOT_ARCHIVED,
                error="Failed to fetch folders for space",
            ),
            self._request(
                "GET", f"/space/{space_id}/list", params=_NOT_ARCHIVED,
                error="Failed to fetch lists for space",
            ),
        )

        lists: List[Dict[str, Any]] = []
        for folder in folders_data.get("folders") or []:
            for lst in folder.get("lists") or []:
                lists.append({"id": lst.get("id"), "name": f"{folder.get('name')}/{lst.get('name')}"})
        for lst in lists_data.get("lists") or []:
            lists.append({"id": lst.get("id"), "name": lst.get("name")})

        if with_task_counts and lists:
            counts = await asyncio.gather(*(self._count_tasks(l["id"]) for l in lists))
            for lst, count in zip(lists, counts):
                lst["task_count"] = count
        return lists

    async def _count_tasks(self, list_id: str) -> int:
        data = await self._request(
            "GET", f"/list/{list_id}/task",
            params={"archived": "false", "page": 0, "subtasks": "false"},
            error="Failed to count tasks",
        )
        return int(data.get("total_tasks", len(data.get("tasks") or [])))

    async def get_list_statuses(self, list_id: str) -> Dict[str, Any]:
        data = await self._request("GET", f"/list/{list_id}", error="Failed to load statuses for list")
        statuses = data.get("statuses") or []
        return {"statuses": statuses, "closed_status": pick_closed_status(statuses)}

    # ── Tasks ───────────────────────────────────────────────────────────

    async def get_tasks(self, list_id: str) -> List[Dict[str, Any]]:
        """Every task in the list, closed ones included."""
        data = await self._request(
            "GET", f"/list/{list_id}/task",
            params={"archived": "false", "include_closed": "true"},
            error="Failed to fetch tasks for list",
        )
        return data.get("tasks") or []

    async def get_open_tasks(self, list_id: str) -> List[Dict[str, Any]]:
        open_tasks, _ = partition_tasks(await self.get_tasks(list_id))
        return open_tasks

    async def get_completed_tasks(self, list_id: str) -> List[Dict[str, Any]]:
        _, completed = partition_tasks(await self.get_tasks(list_id))
        return completed

    async def get_due_tasks(self, list_id: str, today: date, tz: tzinfo) -> List[Dict[str, Any]]:
        """Open tasks due today, tomorrow, or overdue."""
        return filter_due_window(await self.get_open_tasks(list_id), today, tz)

    async def get_space_lists_with_tasks(
        self, space_id: str, today: date, tz: tzinfo
    ) -> Dict[str, Any]:
        lists = await self.get_space_lists(space_id)
        if not lists:
            return {"lists": [], "list_tasks": []}

        per_list = await asyncio.gather(*(self.get_tasks(l["id"]) for l in lists))
        list_tasks = [
            {
                "list_id": lst["id"],
                "list_name": lst["name"],
                "tasks": [shape_task(t) for t in filter_due_window(tasks, today, tz)],
            }
            for lst, tasks in zip(lists, per_list)
        ]
        return {"lists": lists, "list_tasks": list_tasks}

    async def create_task(self, list_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = await self._request(
            "POST", f"/list/{list_id}/task", json=payload, error="Failed to create task"
        )
        self._require_id(data, "Failed to create task")
        return data

    async def update_task_status(self, task_id: str, status: str) -> Dict[str, Any]:
        data = await self._request(
            "PUT", f"/task/{task_id}", json={"status": status},
            error="Could not update task status",
        )
        self._require_id(data, "Could not update task status")
        return data

    async def update_due_date(self, task_id: str, due_date: int) -> Dict[str, Any]:
        data = await self._request(
            "PUT", f"/task/{task_id}", json={"due_date": due_date},
            error="Failed to update due date",
        )
        self._require_id(data, "Failed to update due date")
        return data

    async def _statuses_for_task(self, task_id: str) -> Tuple[str, List[Dict[str, Any]]]:
        task = await self._request("GET", f"/task/{task_id}", error="Failed to fetch task")
        list_id = (task.get("list") or {}).get("id")
        if not list_id:
            raise NotFoundError("Unable to determine list for task.", extra={"task_id": task_id})
        statuses = (await self.get_list_statuses(list_id))["statuses"]
        return list_id, statuses

    async def close_task(self, task_id: str) -> Dict[str, Any]:
        list_id, statuses = await self._statuses_for_task(task_id)
        target = pick_closed_status(statuses)
        if not target:
            raise NoClosedStatusFound(list_id)
        data = await self.update_task_status(task_id, target)
        return {"new_status": target, "clickup_response": data}

    async def reopen_task(self, task_id: str) -> Dict[str, Any]:
        list_id, statuses = await self._statuses_for_task(task_id)
        target = pick_open_status(statuses)
        if not target:
            raise NoOpenStatusFound(list_id)
        data = await self.update_task_status(task_id, target)
        return {"new_status": target, "clickup_response": data}

    # ── Comments ────────────────────────────────────────────────────────

    async def get_last_comment(self, task_id: str) -> Dict[str, Any]:
        data = await self._request(
            "GET", f"/task/{task_id}/comment", error="Failed to fetch last comment for task"
        )
        comments = data.get("comments") or []
        last = comments[-1].get("comment_text") if comments else None
        return {"last_comment": last, "total_comments": len(comments)}

    async def add_comment(self, task_id: str, text: str) -> Dict[str, Any]:
        data = await self._request(
            "POST", f"/task/{task_id}/comment", json={"comment_text": text},
            error="Failed to add comment",
        )
        self._require_id(data, "Failed to add comment")
        return data

    @staticmethod
    def _require_id(data: Any, message: str) -> None:
        if not isinstance(data, dict) or "id" not in data:
            raise UpstreamRequestError(message, status_code=502, raw=data)
