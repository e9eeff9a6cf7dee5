"""
Graph mail — unreplied / unread inbox triage and single-message lookup.

A message counts as replied when the Sent folder holds a message from the
same conversation, or one whose normalized subject matches. Inbox messages
are surfaced when unreplied, unread, or both; read and replied ones are
dropped.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Dict, List, Optional, Set, Tuple

from clients.graph import GraphClient
from config.settings import config
from core.exceptions import UpstreamRequestError

logger = logging.getLogger(__name__)

_INBOX_SELECT = (
    "id,subject,from,receivedDateTime,bodyPreview,isRead,"
    "conversationId,hasAttachments,webLink"
)
_DETAIL_SELECT = (
    "id,subject,from,receivedDateTime,body,bodyPreview,isRead,hasAttachments,"
    "toRecipients,ccRecipients,conversationId,webLink"
)
_SENT_FOLDER_NAMES = ("Sent Items", "Sent Mail")
_SENT_FALLBACK_ID = "SentItems"
_REPLY_PREFIX = re.compile(r"^\s*(re|fw|fwd)\s*:\s*", re.IGNORECASE)


def normalize_subject(subject: Optional[str]) -> str:
    """Strip one leading Re:/Fw:/Fwd:, trim, lowercase."""
    return _REPLY_PREFIX.sub("", subject or "", count=1).strip().lower()


def classify_message(
    message: Dict[str, Any],
    sent_conversations: Set[str],
    sent_subjects: Set[str],
) -> Optional[str]:
    """
    ``"unreplied"``, ``"unread"``, ``"unreplied, unread"`` or ``None`` when
    the message is both replied and read.
    """
    subject = normalize_subject(message.get("subject"))
    replied = message.get("conversationId") in sent_conversations or (
        bool(subject) and subject in sent_subjects
    )
    flags = []
    if not replied:
        flags.append("unreplied")
    if not message.get("isRead", False):
        flags.append("unread")
    return ", ".join(flags) or None


def shape_message(message: Dict[str, Any], status: str) -> Dict[str, Any]:
    sender = (message.get("from") or {}).get("emailAddress") or {}
    return {
        "id": message.get("id"),
        "subject": message.get("subject"),
        "from": sender.get("address", "Unknown"),
        "fromName": sender.get("name", "Unknown"),
        "receivedDateTime": message.get("receivedDateTime"),
        "bodyPreview": message.get("bodyPreview"),
        "isRead": message.get("isRead", False),
        "hasAttachments": message.get("hasAttachments", False),
        "conversationId": message.get("conversationId"),
        "webLink": message.get("webLink")
        or f"https://outlook.live.com/mail/0/inbox/id/{message.get('id')}",
        "status": status,
    }


class GraphMailClient(GraphClient):

    async def resolve_sent_folder(self) -> str:
        """Folder id of the Sent folder, by well-known name, then display name."""
        try:
            folder = await self._request(
                "GET", f"/me/mailFolders/{_SENT_FALLBACK_ID}", error="Failed to open Sent Items"
            )
            return folder.get("id") or _SENT_FALLBACK_ID
        except UpstreamRequestError as exc:
            if exc.status_code != 404:
                raise
        logger.info("Well-known SentItems folder missing; scanning mail folders")

        folders = await self._request(
            "GET", "/me/mailFolders", params={"$top": 100}, error="Failed to list mail folders"
        )
        for folder in folders.get("value") or []:
            if folder.get("displayName") in _SENT_FOLDER_NAMES:
                return folder["id"]
        return _SENT_FALLBACK_ID

    async def sent_index(self) -> Tuple[Set[str], Set[str]]:
        """Conversation ids and normalized subjects of everything in the Sent folder."""
        folder_id = await self.resolve_sent_folder()
        sent = await self._collect(
            f"/me/mailFolders/{folder_id}/messages",
            {
                "$top": config.sent_page_size,
                "$select": "conversationId,subject",
                "$orderby": "sentDateTime DESC",
            },
            error="Failed to read sent messages",
        )
        conversations: Set[str] = set()
        subjects: Set[str] = set()
        for msg in sent:
            if msg.get("conversationId"):
                conversations.add(msg["conversationId"])
            normalized = normalize_subject(msg.get("subject"))
            if normalized:
                subjects.add(normalized)
        return conversations, subjects

    async def get_unreplied_emails(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        top: int = 50,
        skip: int = 0,
    ) -> List[Dict[str, Any]]:
        filters = []
        if start_date:
            filters.append(f"receivedDateTime ge {start_date.isoformat()}T00:00:00Z")
        if end_date:
            filters.append(f"receivedDateTime le {end_date.isoformat()}T23:59:59Z")
        filters.append("isDraft eq false")

        inbox = await self._request(
            "GET", "/me/mailFolders/inbox/messages",
            params={
                "$top": top,
                "$skip": skip,
                "$select": _INBOX_SELECT,
                "$orderby": "receivedDateTime DESC",
                "$filter": " and ".join(filters),
            },
            error="Failed to fetch inbox messages",
        )
        messages = inbox.get("value") or []
        if not messages:
            return []

        conversations, subjects = await self.sent_index()
        emails = []
        for message in messages:
            status = classify_message(message, conversations, subjects)
            if status:
                emails.append(shape_message(message, status))
        logger.debug("Inbox triage: %d scanned, %d surfaced", len(messages), len(emails))
        return emails

    async def get_email(self, message_id: str) -> Dict[str, Any]:
        data = await self._request(
            "GET", f"/me/messages/{message_id}",
            params={"$select": _DETAIL_SELECT},
            error="Failed to fetch email",
        )
        return {k: v for k, v in data.items() if not k.startswith("@odata")}
