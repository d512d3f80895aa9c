"""
Google Workspace connectors: Gmail, Calendar, Drive.

All three share the ``google`` credential group and use the service's own
text matching, so their similarity is a fixed per-kind constant.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from recollect.core.types import ConnectorCredentials, RetrievedItem
from recollect.sources.connectors.base import ConnectorSource

logger = logging.getLogger("Recollect.Connectors")

GMAIL_API = "https://www.googleapis.com/gmail/v1/users/me/messages"
CALENDAR_API = "https://www.googleapis.com/calendar/v3/calendars/primary/events"
DRIVE_API = "https://www.googleapis.com/drive/v3/files"


def _header(headers: List[Dict[str, Any]], name: str, default: str) -> str:
    for header in headers:
        if header.get("name") == name:
            return header.get("value") or default
    return default


class GmailConnector(ConnectorSource):
    kind = "email"
    default_score = 0.8
    credential_group = "google"
    section_title = "Recent Relevant Emails"

    async def _query(
        self,
        query_text: str,
        credentials: ConnectorCredentials,
        limit: int,
    ) -> List[RetrievedItem]:
        data = await self._get_json(
            GMAIL_API,
            credentials,
            params={"q": query_text, "maxResults": limit},
        )
        message_ids = [m["id"] for m in data.get("messages") or [] if m.get("id")]
        details = await asyncio.gather(
            *(self._message_item(message_id, credentials) for message_id in message_ids)
        )
        return [item for item in details if item is not None]

    async def _message_item(
        self,
        message_id: str,
        credentials: ConnectorCredentials,
    ) -> Optional[RetrievedItem]:
        try:
            detail = await self._get_json(
                f"{GMAIL_API}/{message_id}",
                credentials,
                params=[
                    ("format", "metadata"),
                    ("metadataHeaders", "Subject"),
                    ("metadataHeaders", "From"),
                    ("metadataHeaders", "Date"),
                ],
            )
        except Exception as e:
            logger.debug("Skipping Gmail message %s: %s", message_id, e)
            return None

        headers = (detail.get("payload") or {}).get("headers") or []
        subject = _header(headers, "Subject", "No subject")
        sender = _header(headers, "From", "Unknown")
        date = _header(headers, "Date", "")
        return self._item(
            item_id=message_id,
            content=f'Email from {sender}: "{subject}"',
            summary=subject,
            created_at=date or None,
        )


class CalendarConnector(ConnectorSource):
    kind = "calendar"
    default_score = 0.85
    credential_group = "google"
    section_title = "Upcoming Calendar Events"

    def __init__(self, *, lookahead_days: int = 30, **kwargs):
        super().__init__(**kwargs)
        self.lookahead_days = lookahead_days

    async def _query(
        self,
        query_text: str,
        credentials: ConnectorCredentials,
        limit: int,
    ) -> List[RetrievedItem]:
        now = datetime.now(timezone.utc)
        data = await self._get_json(
            CALENDAR_API,
            credentials,
            params={
                "timeMin": now.isoformat(),
                "timeMax": (now + timedelta(days=self.lookahead_days)).isoformat(),
                "maxResults": limit,
                "singleEvents": "true",
                "orderBy": "startTime",
                "q": query_text,
            },
        )
        items = []
        for event in data.get("items") or []:
            start = event.get("start") or {}
            when = start.get("dateTime") or start.get("date")
            title = event.get("summary") or "Untitled event"
            content = f'Calendar event: "{title}" on {when}'
            if event.get("location"):
                content += f" at {event['location']}"
            items.append(
                self._item(
                    item_id=str(event.get("id")),
                    content=content,
                    summary=title,
                    created_at=when,
                )
            )
        return items


class DriveConnector(ConnectorSource):
    kind = "drive"
    default_score = 0.75
    credential_group = "google"
    section_title = "Relevant Google Drive Files"

    @staticmethod
    def build_query(query_text: str) -> str:
        escaped = query_text.replace("\\", "\\\\").replace("'", "\\'")
        return f"fullText contains '{escaped}'"

    async def _query(
        self,
        query_text: str,
        credentials: ConnectorCredentials,
        limit: int,
    ) -> List[RetrievedItem]:
        data = await self._get_json(
            DRIVE_API,
            credentials,
            params={
                "q": self.build_query(query_text),
                "pageSize": limit,
                "fields": "files(id,name,mimeType,modifiedTime,webViewLink)",
            },
        )
        return [
            self._item(
                item_id=str(f.get("id")),
                content=f'Google Drive file: "{f.get("name")}" ({f.get("mimeType")})',
                summary=f.get("name"),
                created_at=f.get("modifiedTime"),
            )
            for f in data.get("files") or []
        ]
