"""
ClickUp routes.

Route prefix: /clickup
"""

from __future__ import annotations

import logging
from datetime import date, datetime, tzinfo
from typing import Any, Dict, Tuple
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_clickup_client
from clients.clickup import ClickUpClient, shape_task
from config.settings import config
from utils.schemas import CommentCreate, DueDateUpdate, TaskCreate, TaskStatusUpdate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["clickup"])


def _today() -> Tuple[date, tzinfo]:
    tz = ZoneInfo(config.clickup_timezone)
    return datetime.now(tz).date(), tz


# ── Account / workspace ─────────────────────────────────────────────────


@router.get("/auth/user")
async def clickup_user(clickup: ClickUpClient = Depends(get_clickup_client)) -> Dict[str, Any]:
    return {"success": True, "user": await clickup.get_authorized_user()}


@router.get("/teams")
async def teams(clickup: ClickUpClient = Depends(get_clickup_client)) -> JSONResponse:
    """Legacy passthrough: upstream body and status as-is."""
    status, body = await clickup.get_teams_raw()
    return JSONResponse(body, status_code=status)


@router.get("/workspaces")
async def workspaces(clickup: ClickUpClient = Depends(get_clickup_client)) -> Dict[str, Any]:
    result = await clickup.get_workspaces()
    return {"success": True, **result}


@router.get("/workspace/{team_id}/members")
async def workspace_members(
    team_id: str, clickup: ClickUpClient = Depends(get_clickup_client)
) -> Dict[str, Any]:
    members = await clickup.get_workspace_members(team_id)
    return {"success": True, "team_id": team_id, "members": members}


@router.get("/workspace/{team_id}/spaces")
async def workspace_spaces(
    team_id: str, clickup: ClickUpClient = Depends(get_clickup_client)
) -> Dict[str, Any]:
    spaces = await clickup.get_spaces(team_id)
    return {"success": True, "team_id": team_id, "spaces": spaces}


# ── Lists ───────────────────────────────────────────────────────────────


@router.get("/space/{space_id}/lists")
async def space_lists(
    space_id: str, clickup: ClickUpClient = Depends(get_clickup_client)
) -> Dict[str, Any]:
    lists = await clickup.get_space_lists(space_id, with_task_counts=True)
    body: Dict[str, Any] = {"success": True, "space_id": space_id, "lists": lists}
    if not lists:
        body["message"] = "No lists found for this space"
    return body


@router.get("/space/{space_id}/lists-tasks")
async def space_lists_with_tasks(
    space_id: str, clickup: ClickUpClient = Depends(get_clickup_client)
) -> Dict[str, Any]:
    today, tz = _today()
    result = await clickup.get_space_lists_with_tasks(space_id, today, tz)
    body: Dict[str, Any] = {"success": True, "space_id": space_id, **result}
    if not result["lists"]:
        body["message"] = "No lists found in this space."
    return body


@router.get("/list/{list_id}/statuses")
async def list_statuses(
    list_id: str, clickup: ClickUpClient = Depends(get_clickup_client)
) -> Dict[str, Any]:
    result = await clickup.get_list_statuses(list_id)
    return {"success": True, "list_id": list_id, **result}


# ── Tasks ───────────────────────────────────────────────────────────────


def _task_list_body(list_id: str, tasks: list) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "success": True,
        "list_id": list_id,
        "tasks": [shape_task(t) for t in tasks],
    }
    if not tasks:
        body["message"] = "No tasks found for this list"
    return body


@router.get("/list/{list_id}/completed-tasks")
async def completed_tasks(
    list_id: str, clickup: ClickUpClient = Depends(get_clickup_client)
) -> Dict[str, Any]:
    return _task_list_body(list_id, await clickup.get_completed_tasks(list_id))


@router.get("/list/{list_id}/tasks")
@router.get("/list/{list_id}/due-tasks")
async def due_tasks(
    list_id: str, clickup: ClickUpClient = Depends(get_clickup_client)
) -> Dict[str, Any]:
    """Open tasks due today, tomorrow or overdue; undated tasks are left out."""
    today, tz = _today()
    return _task_list_body(list_id, await clickup.get_due_tasks(list_id, today, tz))


@router.post("/list/{list_id}/task")
async def create_task(
    list_id: str,
    req: TaskCreate,
    clickup: ClickUpClient = Depends(get_clickup_client),
) -> Dict[str, Any]:
    task = await clickup.create_task(list_id, req.to_payload())
    logger.info("Created ClickUp task %s in list %s", task.get("id"), list_id)
    return {"success": True, "task": task}


@router.put("/task/{task_id}/status")
async def update_status(
    task_id: str,
    req: TaskStatusUpdate,
    clickup: ClickUpClient = Depends(get_clickup_client),
) -> Dict[str, Any]:
    data = await clickup.update_task_status(task_id, req.status)
    return {
        "success": True,
        "task_id": task_id,
        "new_status": req.status,
        "clickup_response": data,
    }


@router.put("/task/{task_id}/due-date")
async def update_due_date(
    task_id: str,
    req: DueDateUpdate,
    clickup: ClickUpClient = Depends(get_clickup_client),
) -> Dict[str, Any]:
    data = await clickup.update_due_date(task_id, req.due_date)
    return {
        "success": True,
        "message": "Due date updated successfully.",
        "task_id": task_id,
        "clickup_response": data,
    }


@router.put("/task/{task_id}/close")
async def close_task(
    task_id: str, clickup: ClickUpClient = Depends(get_clickup_client)
) -> Dict[str, Any]:
    result = await clickup.close_task(task_id)
    return {"success": True, "task_id": task_id, **result}


@router.put("/task/{task_id}/reopen")
async def reopen_task(
    task_id: str, clickup: ClickUpClient = Depends(get_clickup_client)
) -> Dict[str, Any]:
    result = await clickup.reopen_task(task_id)
    return {"success": True, "task_id": task_id, **result}


# ── Comments ────────────────────────────────────────────────────────────


@router.get("/task/{task_id}/last-comment")
async def last_comment(
    task_id: str, clickup: ClickUpClient = Depends(get_clickup_client)
) -> Dict[str, Any]:
    result = await clickup.get_last_comment(task_id)
    return {"success": True, "task_id": task_id, **result}


@router.post("/task/{task_id}/comment")
async def add_comment(
    task_id: str,
    req: CommentCreate,
    clickup: ClickUpClient = Depends(get_clickup_client),
) -> Dict[str, Any]:
    comment = await clickup.add_comment(task_id, req.comment_text)
    return {"success": True, "task_id": task_id, "comment": comment}
