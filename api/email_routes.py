"""
Outlook mail routes.

Route prefix: /emails
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_mail_client
from clients.graph_mail import GraphMailClient
from config.settings import config
from core.exceptions import InputValidationError

router = APIRouter(tags=["emails"])


def date_window(
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
) -> Tuple[Optional[date], Optional[date]]:
    # declared ahead of the mail client so a bad window never triggers a refresh
    if start_date and end_date and start_date > end_date:
        raise InputValidationError("startDate must not be after endDate")
    return start_date, end_date


@router.get("/unreplied")
async def unreplied_emails(
    window: Tuple[Optional[date], Optional[date]] = Depends(date_window),
    top: Optional[int] = Query(default=None, ge=1, le=1000),
    skip: int = Query(default=0, ge=0),
    mail: GraphMailClient = Depends(get_mail_client),
) -> Dict[str, Any]:
    """Inbox messages that are unreplied, unread, or both."""
    start_date, end_date = window
    emails = await mail.get_unreplied_emails(
        start_date=start_date,
        end_date=end_date,
        top=top or config.unreplied_max_results,
        skip=skip,
    )
    return {"success": True, "emails": emails, "count": len(emails)}


@router.get("/{message_id}")
async def email_details(
    message_id: str,
    mail: GraphMailClient = Depends(get_mail_client),
) -> Dict[str, Any]:
    return {"success": True, "email": await mail.get_email(message_id)}
