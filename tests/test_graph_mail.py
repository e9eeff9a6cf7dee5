"""
Tests for inbox triage against a fake Graph mailbox.
"""

from datetime import date

import pytest

from clients.graph_mail import GraphMailClient, classify_message, normalize_subject
from core.exceptions import UpstreamRequestError


def _msg(msg_id, subject, conversation, is_read=False):
    return {
        "id": msg_id,
        "subject": subject,
        "conversationId": conversation,
        "isRead": is_read,
        "from": {"emailAddress": {"address": f"{msg_id}@example.com", "name": msg_id.upper()}},
        "receivedDateTime": "2024-05-01T09:00:00Z",
    }


@pytest.fixture
def mail(upstream):
    return GraphMailClient("graph-token", "https://graph.test", transport=upstream.transport)


class TestSubjectNormalization:
    @pytest.mark.parametrize("raw, expected", [
        ("Re: Budget", "budget"),
        ("  FWD :  Budget  ", "budget"),
        ("fw:budget", "budget"),
        ("Re: Re: Budget", "re: budget"),
        ("Regarding budget", "regarding budget"),
        (None, ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_subject(raw) == expected


class TestClassification:
    def test_replied_by_conversation(self):
        msg = _msg("a", "Hello", "c1", is_read=True)
        assert classify_message(msg, {"c1"}, set()) is None

    def test_replied_by_subject(self):
        msg = _msg("a", "Re: Hello", "c9", is_read=True)
        assert classify_message(msg, set(), {"hello"}) is None

    def test_unreplied_and_unread(self):
        assert classify_message(_msg("a", "Hello", "c1"), set(), set()) == "unreplied, unread"

    def test_unread_only(self):
        assert classify_message(_msg("a", "Hello", "c1"), {"c1"}, set()) == "unread"

    def test_empty_subject_never_matches(self):
        msg = _msg("a", "", "c1", is_read=True)
        assert classify_message(msg, set(), {""}) == "unreplied"


class TestGraphMailClient:
    @pytest.mark.asyncio
    async def test_unreplied_emails(self, mail, upstream):
        upstream.add("GET", "/me/mailFolders/inbox/messages", {"value": [
            _msg("a", "Quarterly numbers", "c1"),
            _msg("b", "Lunch?", "c2", is_read=True),
            _msg("c", "Re: Contract", "c3", is_read=True),
        ]})
        upstream.add("GET", "/me/mailFolders/SentItems", {"id": "sent-1"})
        upstream.add("GET", "/me/mailFolders/sent-1/messages", {"value": [
            {"conversationId": "c2", "subject": "Re: Lunch?"},
            {"conversationId": "other", "subject": "FW: contract"},
        ]})

        emails = await mail.get_unreplied_emails(date(2024, 5, 1), date(2024, 5, 31), top=25)

        assert [(e["id"], e["status"]) for e in emails] == [("a", "unreplied, unread")]
        assert emails[0]["from"] == "a@example.com"
        assert emails[0]["webLink"].endswith("/a")

        params = upstream.calls[0].url.params
        assert params["$filter"] == (
            "receivedDateTime ge 2024-05-01T00:00:00Z and "
            "receivedDateTime le 2024-05-31T23:59:59Z and isDraft eq false"
        )
        assert params["$orderby"] == "receivedDateTime DESC"
        assert params["$top"] == "25"

    @pytest.mark.asyncio
    async def test_empty_inbox_skips_sent_scan(self, mail, upstream):
        upstream.add("GET", "/me/mailFolders/inbox/messages", {"value": []})
        assert await mail.get_unreplied_emails() == []
        assert upstream.paths() == ["/me/mailFolders/inbox/messages"]

    @pytest.mark.asyncio
    async def test_reply_on_later_sent_page_counts(self, mail, upstream):
        upstream.add("GET", "/me/mailFolders/inbox/messages", {"value": [
            _msg("a", "Old thread", "c-old", is_read=True),
        ]})
        upstream.add("GET", "/me/mailFolders/SentItems", {"id": "sent-1"})
        upstream.add("GET", "/me/mailFolders/sent-1/messages", {
            "value": [{"conversationId": f"c{i}", "subject": f"Note {i}"} for i in range(200)],
            "@odata.nextLink": "https://graph.test/me/mailFolders/sent-1/messages/page2",
        })
        upstream.add("GET", "/me/mailFolders/sent-1/messages/page2", {"value": [
            {"conversationId": "c-old", "subject": "Re: Old thread"},
        ]})

        assert await mail.get_unreplied_emails() == []
        assert upstream.count("GET", "/me/mailFolders/sent-1/messages/page2") == 1

    @pytest.mark.asyncio
    async def test_sent_folder_found_by_display_name(self, mail, upstream):
        upstream.add("GET", "/me/mailFolders", {"value": [
            {"id": "in-1", "displayName": "Inbox"},
            {"id": "sm-1", "displayName": "Sent Mail"},
        ]})
        assert await mail.resolve_sent_folder() == "sm-1"

    @pytest.mark.asyncio
    async def test_sent_folder_falls_back_to_well_known_name(self, mail, upstream):
        upstream.add("GET", "/me/mailFolders", {"value": [{"id": "in-1", "displayName": "Inbox"}]})
        assert await mail.resolve_sent_folder() == "SentItems"

    @pytest.mark.asyncio
    async def test_sent_folder_other_errors_propagate(self, mail, upstream):
        upstream.add("GET", "/me/mailFolders/SentItems", {"error": {"message": "denied"}}, status=403)
        with pytest.raises(UpstreamRequestError) as exc:
            await mail.resolve_sent_folder()
        assert exc.value.status_code == 403

    @pytest.mark.asyncio
    async def test_get_email_strips_odata_keys(self, mail, upstream):
        upstream.add("GET", "/me/messages/m1", {
            "@odata.context": "https://graph.test/$metadata",
            "@odata.etag": "W/1",
            "id": "m1",
            "subject": "Hi",
        })
        assert await mail.get_email("m1") == {"id": "m1", "subject": "Hi"}

    @pytest.mark.asyncio
    async def test_graph_error_message_surfaces(self, mail, upstream):
        upstream.add(
            "GET", "/me/messages/gone",
            {"error": {"code": "ErrorItemNotFound", "message": "The specified object was not found."}},
            status=404,
        )
        with pytest.raises(UpstreamRequestError) as exc:
            await mail.get_email("gone")
        assert exc.value.status_code == 404
        assert "not found" in exc.value.message
        assert exc.value.raw["error"]["code"] == "ErrorItemNotFound"
