"""
OneDrive / Excel routes.

Route prefix: /sheets
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_file_locator, get_sheet_client, require_principal
from auth.models import SessionPrincipal
from clients.graph_drive import FileLocator
from clients.graph_sheets import GraphSheetClient
from config.settings import config
from core.exceptions import GatewayError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sheets"])


def _workbook_path() -> str:
    if not config.microsoft_excel_sheet_path:
        raise GatewayError("Workbook path is not configured", status_code=500)
    return config.microsoft_excel_sheet_path


def _workbook_name(filename: Optional[str]) -> str:
    return filename or PurePosixPath(_workbook_path()).name


@router.get("/sheet-data")
async def sheet_data(
    filename: Optional[str] = Query(default=None),
    table: Optional[str] = Query(default=None),
    principal: SessionPrincipal = Depends(require_principal),
    locator: FileLocator = Depends(get_file_locator),
) -> Dict[str, Any]:
    """Rows of the configured workbook table, located via file discovery."""
    name = _workbook_name(filename)
    result = await locator.read_table(
        principal.id, name, table or config.microsoft_excel_table_name
    )
    return {"success": True, **result}


@router.delete("/file-location")
async def forget_file_location(
    filename: Optional[str] = Query(default=None),
    principal: SessionPrincipal = Depends(require_principal),
    locator: FileLocator = Depends(get_file_locator),
) -> Dict[str, Any]:
    name = _workbook_name(filename)
    locator.invalidate(principal.id, name)
    logger.info("Cleared cached location of %s for user %s", name, principal.id)
    return {"success": True, "filename": name}


@router.get("/used-range")
async def used_range(sheets: GraphSheetClient = Depends(get_sheet_client)) -> Dict[str, Any]:
    values = await sheets.get_used_range(_workbook_path(), config.microsoft_excel_sheet_name)
    return {"success": True, "values": values}


@router.get("/sheet-colors")
async def sheet_colors(sheets: GraphSheetClient = Depends(get_sheet_client)) -> Dict[str, Any]:
    """Used range with each cell's fill color."""
    data = await sheets.get_colored_range(_workbook_path(), config.microsoft_excel_sheet_name)
    return {"success": True, "data": data}
