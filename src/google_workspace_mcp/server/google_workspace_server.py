"""Google Workspace MCP server.

This MCP server provides tools for interacting with Google Workspace APIs
(Gmail, Calendar, Drive, Docs, Sheets, Slides, People) over stdio.

Authentication happens once at startup through the OAuthManager; every tool
call then asks the AuthenticatedSession for a bearer token, which refreshes
it lazily when it expires.
"""

import asyncio
import base64
import json
import logging
import sys
from datetime import datetime, timezone
from email.mime.text import MIMEText
from typing import Any
from urllib.parse import quote

import httpx
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from google_workspace_mcp.auth import AuthenticatedSession, OAuthManager, WorkspaceAuthError
from google_workspace_mcp.auth.config import get_log_level
from google_workspace_mcp.server.tool_definitions import TOOL_DEFINITIONS

logger = logging.getLogger(__name__)

SERVER_NAME = "google-workspace-mcp"

# Google API base URLs
GMAIL_API_BASE = "https://gmail.googleapis.com/gmail/v1"
CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"
DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
DOCS_API_BASE = "https://docs.googleapis.com/v1"
SHEETS_API_BASE = "https://sheets.googleapis.com/v4"
SLIDES_API_BASE = "https://slides.googleapis.com/v1"
PEOPLE_API_BASE = "https://people.googleapis.com/v1"

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
CONTACT_FIELDS = "names,emailAddresses,phoneNumbers,organizations"


def path_segment(value: str, safe: str = "@") -> str:
    """Percent-encode an ID for use inside a URL path.

    Calendar IDs such as ``en.usa#holiday@group.v.calendar.google.com`` would
    otherwise end the path at ``#``.
    """
    return quote(str(value), safe=safe)


def event_url(calendar_id: str, event_id: str) -> str:
    return (
        f"{CALENDAR_API_BASE}/calendars/{path_segment(calendar_id)}"
        f"/events/{path_segment(event_id)}"
    )


def document_url(document_id: str) -> str:
    return f"{DOCS_API_BASE}/documents/{path_segment(document_id)}"


def values_url(spreadsheet_id: str, cell_range: str) -> str:
    # A1 notation keeps its sheet separator and range colon
    return (
        f"{SHEETS_API_BASE}/spreadsheets/{path_segment(spreadsheet_id)}"
        f"/values/{path_segment(cell_range, safe='!:@')}"
    )


class GoogleWorkspaceServer:
    """MCP server for Google Workspace APIs.

    Provides 45 tools for interacting with Google Workspace services:
    - Gmail: Search, read, send, reply, drafts, labels
    - Calendar: Calendars, events, free/busy, quick add
    - Drive: Files, folders, sharing, export, quota
    - Docs: Structure, text, create, append
    - Sheets: Read, update, append, create
    - Slides: Presentations and slides
    - People: Contacts

    Attributes:
        server: MCP Server instance.
        session: Authenticated session supplying bearer tokens.
    """

    def __init__(self, session: AuthenticatedSession) -> None:
        """Initialize the Google Workspace MCP server.

        Args:
            session: Session produced by OAuthManager.acquire_session().
        """
        self.server = Server(SERVER_NAME)
        self.session = session
        self._http_client: httpx.AsyncClient | None = None
        self._setup_handlers()

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create shared HTTP client with connection pooling.

        Returns:
            Shared httpx.AsyncClient instance.
        """
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                http2=True,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                timeout=httpx.Timeout(30.0, connect=10.0),
            )
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client and release resources."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def _setup_handlers(self) -> None:
        """Register MCP tool handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            """Return list of available tools."""
            return TOOL_DEFINITIONS

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            """Handle tool calls."""
            try:
                result = await self._dispatch_tool(name, arguments or {})
                return [TextContent(type="text", text=json.dumps(result, indent=2))]
            except Exception as e:
                logger.exception(f"Error calling tool {name}")
                return [
                    TextContent(
                        type="text",
                        text=json.dumps({"error": str(e)}, indent=2),
                    )
                ]

    async def _make_request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated HTTP request to Google APIs.

        Args:
            method: HTTP method (GET, POST, etc.).
            url: Full URL to request.
            params: Optional query parameters.
            json_data: Optional JSON body data.

        Returns:
            JSON response as a dictionary (empty for bodiless responses).

        Raises:
            SessionExpired: If no valid token can be obtained.
            httpx.HTTPStatusError: If the request fails.
        """
        access_token = await self.session.get_access_token()
        client = await self._get_http_client()

        response = await client.request(
            method=method,
            url=url,
            params=params,
            json=json_data,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
        )
        response.raise_for_status()
        if not response.content:
            return {}
        result: dict[str, Any] = response.json()
        return result

    async def _make_delete_request(self, url: str) -> None:
        """Make an authenticated DELETE request to Google APIs.

        Args:
            url: Full URL to request.

        Raises:
            httpx.HTTPStatusError: If the request fails.
        """
        access_token = await self.session.get_access_token()
        client = await self._get_http_client()

        response = await client.delete(
            url,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        response.raise_for_status()

    async def _make_raw_request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make an authenticated HTTP request returning raw response.

        Used for media downloads and exports, whose bodies are not JSON.

        Args:
            method: HTTP method.
            url: Full URL to request.
            params: Optional query parameters.
            headers: Optional additional headers.

        Returns:
            Raw httpx.Response object.

        Raises:
            httpx.HTTPStatusError: If the request fails.
        """
        access_token = await self.session.get_access_token()
        client = await self._get_http_client()

        request_headers = {"Authorization": f"Bearer {access_token}"}
        if headers:
            request_headers.update(headers)

        response = await client.request(
            method=method,
            url=url,
            params=params,
            headers=request_headers,
        )
        response.raise_for_status()
        return response

    async def _dispatch_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Dispatch tool call to appropriate handler.

        Args:
            name: Tool name.
            arguments: Tool arguments.

        Returns:
            Tool result as dictionary.

        Raises:
            ValueError: If tool name is not recognized.
        """
        handlers = {
            # Gmail
            "search_emails": self._search_emails,
            "read_email": self._read_email,
            "send_email": self._send_email,
            "reply_to_email": self._reply_to_email,
            "create_draft": self._create_draft,
            "trash_email": self._trash_email,
            "mark_as_read": self._mark_as_read,
            "mark_as_unread": self._mark_as_unread,
            "list_labels": self._list_labels,
            "add_label": self._add_label,
            "get_profile": self._get_profile,
            # Calendar
            "list_calendars": self._list_calendars,
            "list_events": self._list_events,
            "get_event": self._get_event,
            "create_event": self._create_event,
            "update_event": self._update_event,
            "delete_event": self._delete_event,
            "find_free_time": self._find_free_time,
            "quick_add_event": self._quick_add_event,
            # Drive
            "list_files": self._list_files,
            "get_file": self._get_file,
            "search_files": self._search_files,
            "create_folder": self._create_folder,
            "delete_file": self._delete_file,
            "copy_file": self._copy_file,
            "move_file": self._move_file,
            "share_file": self._share_file,
            "get_file_content": self._get_file_content,
            "export_file": self._export_file,
            "get_storage_quota": self._get_storage_quota,
            # Docs
            "list_doc_structure": self._list_doc_structure,
            "read_doc_text": self._read_doc_text,
            "create_doc": self._create_doc,
            "append_doc_text": self._append_doc_text,
            # Sheets
            "get_sheet_values": self._get_sheet_values,
            "update_sheet_values": self._update_sheet_values,
            "append_sheet_values": self._append_sheet_values,
            "create_spreadsheet": self._create_spreadsheet,
            # Slides
            "get_presentation": self._get_presentation,
            "create_presentation": self._create_presentation,
            "create_slide": self._create_slide,
            # People
            "list_contacts": self._list_contacts,
            "search_contacts": self._search_contacts,
            "create_contact": self._create_contact,
            "get_contact": self._get_contact,
        }

        handler = handlers.get(name)
        if handler is None:
            raise ValueError(f"Unknown tool: {name}")

        return await handler(arguments)

    # =========================================================================
    # Gmail Read Operations
    # =========================================================================

    @staticmethod
    def _header_map(payload: dict[str, Any]) -> dict[str, str]:
        """Index message headers by lower-cased name."""
        return {h["name"].lower(): h["value"] for h in payload.get("headers", [])}

    async def _search_emails(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Search Gmail messages.

        Args:
            arguments: Tool arguments with query and maxResults.

        Returns:
            Message summaries with id, threadId, from, to, subject, date, snippet.
        """
        query = arguments["query"]
        max_results = int(arguments.get("maxResults", 10))

        url = f"{GMAIL_API_BASE}/users/me/messages"
        response = await self._make_request(
            "GET", url, params={"q": query, "maxResults": max_results}
        )
        found = response.get("messages", [])[:max_results]

        async def fetch_metadata(msg: dict[str, Any]) -> dict[str, Any]:
            msg_url = f"{GMAIL_API_BASE}/users/me/messages/{path_segment(msg['id'])}"
            return await self._make_request(
                "GET",
                msg_url,
                params={
                    "format": "metadata",
                    "metadataHeaders": ["From", "To", "Subject", "Date"],
                },
            )

        # Fetch metadata in parallel
        details = await asyncio.gather(*(fetch_metadata(m) for m in found), return_exceptions=True)

        messages = []
        for msg, detail in zip(found, details):
            if isinstance(detail, BaseException):
                logger.warning(f"Failed to fetch message {msg['id']}: {detail}")
                continue
            headers = self._header_map(detail.get("payload", {}))
            messages.append(
                {
                    "id": msg["id"],
                    "threadId": msg.get("threadId"),
                    "from": headers.get("from", ""),
                    "to": headers.get("to", ""),
                    "subject": headers.get("subject", ""),
                    "date": headers.get("date", ""),
                    "snippet": detail.get("snippet"),
                }
            )

        return {"count": len(messages), "messages": messages}

    async def _read_email(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Get full content of a Gmail message.

        Args:
            arguments: Tool arguments with messageId.

        Returns:
            Message headers, decoded body and labels.
        """
        message_id = arguments["messageId"]

        url = f"{GMAIL_API_BASE}/users/me/messages/{path_segment(message_id)}"
        response = await self._make_request("GET", url, params={"format": "full"})

        payload = response.get("payload", {})
        headers = self._header_map(payload)
        body = self._extract_message_body(payload)

        return {
            "id": response.get("id"),
            "threadId": response.get("threadId"),
            "from": headers.get("from", ""),
            "to": headers.get("to", ""),
            "cc": headers.get("cc", ""),
            "subject": headers.get("subject", ""),
            "date": headers.get("date", ""),
            "body": body or response.get("snippet"),
            "labels": response.get("labelIds", []),
        }

    def _extract_message_body(self, payload: dict[str, Any]) -> str:
        """Extract the text/plain body from a Gmail payload.

        Handles both simple and nested multipart messages.

        Args:
            payload: Gmail message payload.

        Returns:
            Decoded body text, or "" if the message has no plain-text part.
        """
        if payload.get("mimeType", "text/plain") == "text/plain":
            data = payload.get("body", {}).get("data")
            if data:
                return self._decode_body(data)

        for part in payload.get("parts", []):
            mime_type = part.get("mimeType", "")
            if mime_type == "text/plain":
                data = part.get("body", {}).get("data", "")
                if data:
                    return self._decode_body(data)
            elif mime_type.startswith("multipart/"):
                result = self._extract_message_body(part)
                if result:
                    return result

        return ""

    @staticmethod
    def _decode_body(data: str) -> str:
        # Gmail strips base64url padding
        padded = data + "=" * (-len(data) % 4)
        return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")

    async def _list_labels(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """List all Gmail labels (system and custom)."""
        url = f"{GMAIL_API_BASE}/users/me/labels"
        response = await self._make_request("GET", url)

        labels = [
            {"id": label.get("id"), "name": label.get("name"), "type": label.get("type")}
            for label in response.get("labels", [])
        ]
        return {"labels": labels}

    async def _get_profile(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Get the Gmail profile of the authenticated user."""
        url = f"{GMAIL_API_BASE}/users/me/profile"
        response = await self._make_request("GET", url)

        return {
            "emailAddress": response.get("emailAddress"),
            "messagesTotal": response.get("messagesTotal"),
            "threadsTotal": response.get("threadsTotal"),
            "historyId": response.get("historyId"),
        }

    # =========================================================================
    # Gmail Write Operations
    # =========================================================================

    def _build_email_message(
        self,
        to: str,
        subject: str,
        body: str,
        cc: str | None = None,
        bcc: str | None = None,
        in_reply_to: str | None = None,
        references: str | None = None,
    ) -> str:
        """Build RFC 2822 email message and return base64url encoded.

        Args:
            to: Recipient email(s).
            subject: Email subject.
            body: Email body text.
            cc: Optional CC recipients.
            bcc: Optional BCC recipients.
            in_reply_to: Optional Message-ID for reply threading.
            references: Optional References header for reply threading.

        Returns:
            Base64url encoded email message.
        """
        message = MIMEText(body)
        message["to"] = to
        message["subject"] = subject

        if cc:
            message["cc"] = cc
        if bcc:
            message["bcc"] = bcc
        if in_reply_to:
            message["In-Reply-To"] = in_reply_to
        if references:
            message["References"] = references

        return base64.urlsafe_b64encode(message.as_bytes()).decode()

    async def _send_email(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Send an email message.

        Args:
            arguments: Tool arguments with to, subject, body, cc, bcc.

        Returns:
            Sent message id and thread id.
        """
        raw_message = self._build_email_message(
            arguments["to"],
            arguments["subject"],
            arguments["body"],
            arguments.get("cc"),
            arguments.get("bcc"),
        )

        url = f"{GMAIL_API_BASE}/users/me/messages/send"
        response = await self._make_request("POST", url, json_data={"raw": raw_message})

        return {
            "id": response.get("id"),
            "threadId": response.get("threadId"),
            "status": "sent",
        }

    async def _create_draft(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Create an email draft.

        Args:
            arguments: Tool arguments with to, subject, body, cc, bcc.

        Returns:
            Created draft details.
        """
        raw_message = self._build_email_message(
            arguments["to"],
            arguments["subject"],
            arguments["body"],
            arguments.get("cc"),
            arguments.get("bcc"),
        )

        url = f"{GMAIL_API_BASE}/users/me/drafts"
        response = await self._make_request(
            "POST", url, json_data={"message": {"raw": raw_message}}
        )

        return {
            "id": response.get("id"),
            "message": response.get("message"),
            "status": "draft_created",
        }

    async def _reply_to_email(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Reply to an existing email thread.

        Args:
            arguments: Tool arguments with messageId and body.

        Returns:
            Sent reply details.
        """
        message_id = arguments["messageId"]

        # Get original message to extract thread info and headers
        orig_url = f"{GMAIL_API_BASE}/users/me/messages/{path_segment(message_id)}"
        original = await self._make_request(
            "GET",
            orig_url,
            params={
                "format": "metadata",
                "metadataHeaders": ["From", "To", "Subject", "Message-ID"],
            },
        )

        headers = self._header_map(original.get("payload", {}))
        original_subject = headers.get("subject", "")
        message_id_header = headers.get("message-id")

        if original_subject.lower().startswith("re:"):
            reply_subject = original_subject
        else:
            reply_subject = f"Re: {original_subject}"

        raw_message = self._build_email_message(
            to=headers.get("from", ""),
            subject=reply_subject,
            body=arguments["body"],
            in_reply_to=message_id_header,
            references=message_id_header,
        )

        url = f"{GMAIL_API_BASE}/users/me/messages/send"
        response = await self._make_request(
            "POST", url, json_data={"raw": raw_message, "threadId": original.get("threadId")}
        )

        return {
            "id": response.get("id"),
            "threadId": response.get("threadId"),
            "status": "sent",
        }

    # =========================================================================
    # Gmail Message Management
    # =========================================================================

    async def _modify_labels(
        self,
        message_id: str,
        add: list[str] | None = None,
        remove: list[str] | None = None,
    ) -> dict[str, Any]:
        url = f"{GMAIL_API_BASE}/users/me/messages/{path_segment(message_id)}/modify"
        body: dict[str, Any] = {}
        if add:
            body["addLabelIds"] = add
        if remove:
            body["removeLabelIds"] = remove
        return await self._make_request("POST", url, json_data=body)

    async def _trash_email(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Move a message to trash."""
        message_id = arguments["messageId"]
        url = f"{GMAIL_API_BASE}/users/me/messages/{path_segment(message_id)}/trash"
        await self._make_request("POST", url)
        return {"id": message_id, "status": "trashed"}

    async def _mark_as_read(self, arguments: dict[str, Any]) -> dict[str, Any]:
        message_id = arguments["messageId"]
        await self._modify_labels(message_id, remove=["UNREAD"])
        return {"id": message_id, "status": "marked_read"}

    async def _mark_as_unread(self, arguments: dict[str, Any]) -> dict[str, Any]:
        message_id = arguments["messageId"]
        await self._modify_labels(message_id, add=["UNREAD"])
        return {"id": message_id, "status": "marked_unread"}

    async def _add_label(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Add a label to a message."""
        message_id = arguments["messageId"]
        label_id = arguments["labelId"]
        await self._modify_labels(message_id, add=[label_id])
        return {"id": message_id, "labelId": label_id, "status": "label_added"}

    # =========================================================================
    # Calendar Operations
    # =========================================================================

    @staticmethod
    def _event_time(value: dict[str, Any] | None) -> str | None:
        value = value or {}
        return value.get("dateTime") or value.get("date")

    async def _list_calendars(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """List all calendars accessible by the user.

        Args:
            arguments: Tool arguments (not used).

        Returns:
            Calendars with id, summary, primary flag, time zone and access role.
        """
        url = f"{CALENDAR_API_BASE}/users/me/calendarList"
        response = await self._make_request("GET", url)

        calendars = []
        for item in response.get("items", []):
            calendars.append(
                {
                    "id": item.get("id"),
                    "summary": item.get("summary"),
                    "primary": item.get("primary", False),
                    "timeZone": item.get("timeZone"),
                    "accessRole": item.get("accessRole"),
                }
            )

        return {"calendars": calendars}

    async def _list_events(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """List upcoming events from a calendar.

        Args:
            arguments: Tool arguments with calendarId, maxResults, timeMin, timeMax.

        Returns:
            Events ordered by start time.
        """
        calendar_id = arguments.get("calendarId", "primary")
        time_min = arguments.get("timeMin") or datetime.now(timezone.utc).isoformat()

        params: dict[str, Any] = {
            "maxResults": int(arguments.get("maxResults", 10)),
            "timeMin": time_min,
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        if arguments.get("timeMax"):
            params["timeMax"] = arguments["timeMax"]

        url = f"{CALENDAR_API_BASE}/calendars/{path_segment(calendar_id)}/events"
        response = await self._make_request("GET", url, params=params)

        events = []
        for item in response.get("items", []):
            events.append(
                {
                    "id": item.get("id"),
                    "summary": item.get("summary"),
                    "description": item.get("description"),
                    "location": item.get("location"),
                    "start": self._event_time(item.get("start")),
                    "end": self._event_time(item.get("end")),
                    "attendees": [
                        {"email": a.get("email"), "responseStatus": a.get("responseStatus")}
                        for a in item.get("attendees", [])
                    ],
                    "htmlLink": item.get("htmlLink"),
                }
            )

        return {"events": events}

    async def _get_event(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Get full details of one event."""
        calendar_id = arguments.get("calendarId", "primary")
        event_id = arguments["eventId"]

        url = event_url(calendar_id, event_id)
        event = await self._make_request("GET", url)

        return {
            "id": event.get("id"),
            "summary": event.get("summary"),
            "description": event.get("description"),
            "location": event.get("location"),
            "start": self._event_time(event.get("start")),
            "end": self._event_time(event.get("end")),
            "timeZone": event.get("start", {}).get("timeZone"),
            "attendees": [
                {
                    "email": a.get("email"),
                    "displayName": a.get("displayName"),
                    "responseStatus": a.get("responseStatus"),
                    "organizer": a.get("organizer", False),
                }
                for a in event.get("attendees", [])
            ],
            "organizer": event.get("organizer"),
            "htmlLink": event.get("htmlLink"),
            "hangoutLink": event.get("hangoutLink"),
            "recurringEventId": event.get("recurringEventId"),
        }

    async def _create_event(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Create a new calendar event.

        Args:
            arguments: Tool arguments with summary, start, end, etc.

        Returns:
            Created event details with id and link.
        """
        calendar_id = arguments.get("calendarId", "primary")
        time_zone = arguments.get("timeZone")

        event_body: dict[str, Any] = {
            "summary": arguments["summary"],
            "start": {"dateTime": arguments["start"]},
            "end": {"dateTime": arguments["end"]},
        }

        if time_zone:
            event_body["start"]["timeZone"] = time_zone
            event_body["end"]["timeZone"] = time_zone
        if arguments.get("description"):
            event_body["description"] = arguments["description"]
        if arguments.get("location"):
            event_body["location"] = arguments["location"]
        if arguments.get("attendees"):
            event_body["attendees"] = [{"email": email} for email in arguments["attendees"]]

        url = f"{CALENDAR_API_BASE}/calendars/{path_segment(calendar_id)}/events"
        response = await self._make_request("POST", url, json_data=event_body)

        return {
            "id": response.get("id"),
            "summary": response.get("summary"),
            "start": response.get("start", {}).get("dateTime"),
            "end": response.get("end", {}).get("dateTime"),
            "htmlLink": response.get("htmlLink"),
            "status": "created",
        }

    async def _update_event(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Update an existing calendar event.

        Reads the current event and writes it back with the given fields
        replaced, so omitted fields keep their values.

        Args:
            arguments: Tool arguments with eventId and fields to update.

        Returns:
            Updated event details.
        """
        calendar_id = arguments.get("calendarId", "primary")
        event_id = arguments["eventId"]

        url = event_url(calendar_id, event_id)
        event = await self._make_request("GET", url)

        for field in ("summary", "description", "location"):
            if arguments.get(field) is not None:
                event[field] = arguments[field]
        if arguments.get("start"):
            event["start"] = {"dateTime": arguments["start"]}
        if arguments.get("end"):
            event["end"] = {"dateTime": arguments["end"]}
        if arguments.get("attendees") is not None:
            event["attendees"] = [{"email": email} for email in arguments["attendees"]]

        response = await self._make_request("PUT", url, json_data=event)

        return {
            "id": response.get("id"),
            "summary": response.get("summary"),
            "start": response.get("start", {}).get("dateTime"),
            "end": response.get("end", {}).get("dateTime"),
            "status": "updated",
        }

    async def _delete_event(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Delete a calendar event."""
        calendar_id = arguments.get("calendarId", "primary")
        event_id = arguments["eventId"]

        url = event_url(calendar_id, event_id)
        await self._make_delete_request(url)

        return {"id": event_id, "status": "deleted"}

    async def _find_free_time(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Query busy intervals across calendars.

        Args:
            arguments: Tool arguments with timeMin, timeMax, calendars.

        Returns:
            Busy slots per calendar.
        """
        time_min = arguments["timeMin"]
        time_max = arguments["timeMax"]
        calendar_ids = arguments.get("calendars") or ["primary"]

        url = f"{CALENDAR_API_BASE}/freeBusy"
        response = await self._make_request(
            "POST",
            url,
            json_data={
                "timeMin": time_min,
                "timeMax": time_max,
                "items": [{"id": cal_id} for cal_id in calendar_ids],
            },
        )

        calendars = []
        for cal_id, data in response.get("calendars", {}).items():
            calendars.append(
                {
                    "calendarId": cal_id,
                    "busy": [
                        {"start": slot.get("start"), "end": slot.get("end")}
                        for slot in data.get("busy", [])
                    ],
                    "errors": data.get("errors"),
                }
            )

        return {"timeMin": time_min, "timeMax": time_max, "calendars": calendars}

    async def _quick_add_event(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Create an event from a natural language description."""
        calendar_id = arguments.get("calendarId", "primary")

        url = f"{CALENDAR_API_BASE}/calendars/{path_segment(calendar_id)}/events/quickAdd"
        response = await self._make_request("POST", url, params={"text": arguments["text"]})

        return {
            "id": response.get("id"),
            "summary": response.get("summary"),
            "start": self._event_time(response.get("start")),
            "end": self._event_time(response.get("end")),
            "htmlLink": response.get("htmlLink"),
            "status": "created",
        }

    # =========================================================================
    # Drive Operations
    # =========================================================================

    @staticmethod
    def _escape_drive_query(value: str) -> str:
        """Escape a literal for use inside a single-quoted Drive query string."""
        return value.replace("\\", "\\\\").replace("'", "\\'")

    @staticmethod
    def _owner_emails(item: dict[str, Any]) -> list[str]:
        return [owner.get("emailAddress") for owner in item.get("owners", [])]

    async def _list_files(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """List Drive files.

        Args:
            arguments: Tool arguments with query, maxResults, orderBy.

        Returns:
            File metadata list.
        """
        params: dict[str, Any] = {
            "pageSize": int(arguments.get("maxResults", 10)),
            "orderBy": arguments.get("orderBy", "modifiedTime desc"),
            "fields": (
                "files(id, name, mimeType, size, createdTime, modifiedTime, webViewLink, owners)"
            ),
        }
        if arguments.get("query"):
            params["q"] = arguments["query"]

        url = f"{DRIVE_API_BASE}/files"
        response = await self._make_request("GET", url, params=params)

        files = []
        for item in response.get("files", []):
            files.append(
                {
                    "id": item.get("id"),
                    "name": item.get("name"),
                    "mimeType": item.get("mimeType"),
                    "size": item.get("size"),
                    "createdTime": item.get("createdTime"),
                    "modifiedTime": item.get("modifiedTime"),
                    "webViewLink": item.get("webViewLink"),
                    "owners": self._owner_emails(item),
                }
            )

        return {"files": files}

    async def _get_file(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Get metadata for one Drive file."""
        file_id = arguments["fileId"]

        url = f"{DRIVE_API_BASE}/files/{path_segment(file_id)}"
        item = await self._make_request(
            "GET",
            url,
            params={
                "fields": (
                    "id, name, mimeType, size, createdTime, modifiedTime, webViewLink, "
                    "webContentLink, owners, permissions, parents, shared"
                )
            },
        )

        return {
            "id": item.get("id"),
            "name": item.get("name"),
            "mimeType": item.get("mimeType"),
            "size": item.get("size"),
            "createdTime": item.get("createdTime"),
            "modifiedTime": item.get("modifiedTime"),
            "webViewLink": item.get("webViewLink"),
            "webContentLink": item.get("webContentLink"),
            "owners": self._owner_emails(item),
            "parents": item.get("parents"),
            "shared": item.get("shared"),
        }

    async def _search_files(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Search Drive files by name or full-text content.

        Args:
            arguments: Tool arguments with query and maxResults.

        Returns:
            Matching files, newest first.
        """
        term = self._escape_drive_query(arguments["query"])

        url = f"{DRIVE_API_BASE}/files"
        response = await self._make_request(
            "GET",
            url,
            params={
                "q": f"fullText contains '{term}' or name contains '{term}'",
                "pageSize": int(arguments.get("maxResults", 20)),
                "orderBy": "modifiedTime desc",
                "fields": "files(id, name, mimeType, size, modifiedTime, webViewLink)",
            },
        )

        files = [
            {
                "id": item.get("id"),
                "name": item.get("name"),
                "mimeType": item.get("mimeType"),
                "size": item.get("size"),
                "modifiedTime": item.get("modifiedTime"),
                "webViewLink": item.get("webViewLink"),
            }
            for item in response.get("files", [])
        ]

        return {"count": len(files), "files": files}

    async def _create_folder(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Create a Drive folder."""
        metadata: dict[str, Any] = {"name": arguments["name"], "mimeType": FOLDER_MIME_TYPE}
        if arguments.get("parentId"):
            metadata["parents"] = [arguments["parentId"]]

        url = f"{DRIVE_API_BASE}/files"
        response = await self._make_request(
            "POST", url, params={"fields": "id, name, webViewLink"}, json_data=metadata
        )

        return {
            "id": response.get("id"),
            "name": response.get("name"),
            "webViewLink": response.get("webViewLink"),
            "status": "created",
        }

    async def _delete_file(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Permanently delete a Drive file."""
        file_id = arguments["fileId"]
        await self._make_delete_request(f"{DRIVE_API_BASE}/files/{path_segment(file_id)}")
        return {"id": file_id, "status": "deleted"}

    async def _copy_file(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Copy a Drive file, optionally renaming it or placing it elsewhere."""
        file_id = arguments["fileId"]
        body: dict[str, Any] = {}
        if arguments.get("name"):
            body["name"] = arguments["name"]
        if arguments.get("parentId"):
            body["parents"] = [arguments["parentId"]]

        url = f"{DRIVE_API_BASE}/files/{path_segment(file_id)}/copy"
        response = await self._make_request(
            "POST", url, params={"fields": "id, name, webViewLink"}, json_data=body
        )

        return {
            "id": response.get("id"),
            "name": response.get("name"),
            "webViewLink": response.get("webViewLink"),
            "status": "copied",
        }

    async def _move_file(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Move a Drive file into a new folder, detaching it from its old parents.

        Args:
            arguments: Tool arguments with fileId and newParentId.

        Returns:
            File id, name and new parents.
        """
        file_id = arguments["fileId"]
        url = f"{DRIVE_API_BASE}/files/{path_segment(file_id)}"

        current = await self._make_request("GET", url, params={"fields": "parents"})
        previous_parents = ",".join(current.get("parents", []))

        params = {"addParents": arguments["newParentId"], "fields": "id, name, parents"}
        if previous_parents:
            params["removeParents"] = previous_parents

        response = await self._make_request("PATCH", url, params=params, json_data={})

        return {
            "id": response.get("id"),
            "name": response.get("name"),
            "parents": response.get("parents"),
            "status": "moved",
        }

    async def _share_file(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Grant a user access to a Drive file."""
        file_id = arguments["fileId"]
        email = arguments["email"]
        role = arguments.get("role", "reader")
        send_notification = arguments.get("sendNotification", True)

        url = f"{DRIVE_API_BASE}/files/{path_segment(file_id)}/permissions"
        response = await self._make_request(
            "POST",
            url,
            params={
                "sendNotificationEmail": str(bool(send_notification)).lower(),
                "fields": "id",
            },
            json_data={"type": "user", "role": role, "emailAddress": email},
        )

        return {
            "fileId": file_id,
            "permissionId": response.get("id"),
            "email": email,
            "role": role,
            "status": "shared",
        }

    async def _get_file_content(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Download the content of a (text) Drive file."""
        file_id = arguments["fileId"]

        response = await self._make_raw_request(
            "GET", f"{DRIVE_API_BASE}/files/{path_segment(file_id)}", params={"alt": "media"}
        )

        return {"fileId": file_id, "content": response.text}

    async def _export_file(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Export a Google Doc, Sheet or Slides file to another format."""
        file_id = arguments["fileId"]
        mime_type = arguments["mimeType"]

        response = await self._make_raw_request(
            "GET",
            f"{DRIVE_API_BASE}/files/{path_segment(file_id)}/export",
            params={"mimeType": mime_type},
        )

        return {"fileId": file_id, "mimeType": mime_type, "content": response.text}

    async def _get_storage_quota(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Get Drive storage usage for the authenticated user."""
        url = f"{DRIVE_API_BASE}/about"
        response = await self._make_request("GET", url, params={"fields": "storageQuota, user"})

        quota = response.get("storageQuota", {})
        return {
            "user": response.get("user", {}).get("emailAddress"),
            "limit": quota.get("limit"),
            "usage": quota.get("usage"),
            "usageInDrive": quota.get("usageInDrive"),
            "usageInDriveTrash": quota.get("usageInDriveTrash"),
        }

    # =========================================================================
    # Docs Operations
    # =========================================================================

    @staticmethod
    def _element_type(element: dict[str, Any]) -> str:
        for kind in ("paragraph", "table", "sectionBreak"):
            if kind in element:
                return kind
        return "other"

    async def _list_doc_structure(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """List the top-level structural elements of a document."""
        document_id = arguments["documentId"]

        document = await self._make_request("GET", document_url(document_id))
        content = document.get("body", {}).get("content", [])

        return {
            "documentId": document.get("documentId"),
            "title": document.get("title"),
            "elementCount": len(content),
            "elements": [
                {
                    "index": idx,
                    "type": self._element_type(element),
                    "startIndex": element.get("startIndex"),
                    "endIndex": element.get("endIndex"),
                }
                for idx, element in enumerate(content)
            ],
        }

    def _extract_doc_text(self, body: dict[str, Any]) -> str:
        """Concatenate the text runs of all paragraphs in a document body.

        Args:
            body: Document body from the Docs API.

        Returns:
            Plain text content.
        """
        text_parts = []
        for element in body.get("content", []):
            paragraph = element.get("paragraph")
            if not paragraph:
                continue
            for para_element in paragraph.get("elements", []):
                text_run = para_element.get("textRun")
                if text_run and text_run.get("content"):
                    text_parts.append(text_run["content"])
        return "".join(text_parts)

    async def _read_doc_text(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Read a document as plain text."""
        document_id = arguments["documentId"]

        document = await self._make_request("GET", document_url(document_id))

        return {
            "documentId": document.get("documentId"),
            "title": document.get("title"),
            "text": self._extract_doc_text(document.get("body", {})).strip(),
        }

    async def _insert_doc_text(self, document_id: str, index: int, text: str) -> None:
        url = f"{document_url(document_id)}:batchUpdate"
        await self._make_request(
            "POST",
            url,
            json_data={
                "requests": [{"insertText": {"location": {"index": index}, "text": text}}]
            },
        )

    async def _create_doc(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Create a document, inserting initial content at the start of the body."""
        created = await self._make_request(
            "POST", f"{DOCS_API_BASE}/documents", json_data={"title": arguments["title"]}
        )
        document_id = created["documentId"]

        if arguments.get("content"):
            await self._insert_doc_text(document_id, 1, arguments["content"])

        return {"documentId": document_id, "title": created.get("title"), "status": "created"}

    async def _append_doc_text(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Append text just before the document's final newline."""
        document_id = arguments["documentId"]

        document = await self._make_request("GET", document_url(document_id))
        content = document.get("body", {}).get("content", [])
        last_end = content[-1].get("endIndex", 1) if content else 1
        # The body always ends with a newline that cannot be written after
        insert_at = max(1, last_end - 1)

        await self._insert_doc_text(document_id, insert_at, arguments["text"])

        return {"documentId": document_id, "status": "appended"}

    # =========================================================================
    # Sheets Operations
    # =========================================================================

    async def _get_sheet_values(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Read a range of cell values."""
        spreadsheet_id = arguments["spreadsheetId"]
        cell_range = arguments["range"]

        url = values_url(spreadsheet_id, cell_range)
        response = await self._make_request("GET", url)

        return {
            "range": response.get("range"),
            "majorDimension": response.get("majorDimension"),
            "values": response.get("values", []),
        }

    async def _update_sheet_values(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Overwrite a range of cell values."""
        spreadsheet_id = arguments["spreadsheetId"]
        cell_range = arguments["range"]

        url = values_url(spreadsheet_id, cell_range)
        response = await self._make_request(
            "PUT",
            url,
            params={"valueInputOption": arguments.get("valueInputOption", "USER_ENTERED")},
            json_data={"values": arguments["values"]},
        )

        return {
            "updatedRange": response.get("updatedRange"),
            "updatedRows": response.get("updatedRows"),
            "updatedColumns": response.get("updatedColumns"),
            "updatedCells": response.get("updatedCells"),
        }

    async def _append_sheet_values(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Append rows after the table found in a range."""
        spreadsheet_id = arguments["spreadsheetId"]
        cell_range = arguments["range"]

        url = f"{values_url(spreadsheet_id, cell_range)}:append"
        response = await self._make_request(
            "POST",
            url,
            params={"valueInputOption": arguments.get("valueInputOption", "USER_ENTERED")},
            json_data={"values": arguments["values"]},
        )

        return {"tableRange": response.get("tableRange"), "updates": response.get("updates")}

    async def _create_spreadsheet(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Create a spreadsheet with a single named sheet."""
        body = {
            "properties": {"title": arguments["title"]},
            "sheets": [{"properties": {"title": arguments.get("sheetTitle", "Sheet1")}}],
        }
        response = await self._make_request(
            "POST", f"{SHEETS_API_BASE}/spreadsheets", json_data=body
        )

        return {
            "spreadsheetId": response.get("spreadsheetId"),
            "spreadsheetUrl": response.get("spreadsheetUrl"),
            "title": response.get("properties", {}).get("title"),
        }

    # =========================================================================
    # Slides Operations
    # =========================================================================

    async def _get_presentation(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Summarize a presentation and its slides."""
        presentation_id = arguments["presentationId"]

        response = await self._make_request(
            "GET", f"{SLIDES_API_BASE}/presentations/{path_segment(presentation_id)}"
        )
        slides = response.get("slides", [])

        return {
            "presentationId": response.get("presentationId"),
            "title": response.get("title"),
            "slideCount": len(slides),
            "slides": [
                {
                    "index": idx,
                    "objectId": slide.get("objectId"),
                    "elementCount": len(slide.get("pageElements", [])),
                }
                for idx, slide in enumerate(slides)
            ],
        }

    async def _create_presentation(self, arguments: dict[str, Any]) -> dict[str, Any]:
        response = await self._make_request(
            "POST", f"{SLIDES_API_BASE}/presentations", json_data={"title": arguments["title"]}
        )

        return {
            "presentationId": response.get("presentationId"),
            "title": response.get("title"),
            "status": "created",
        }

    async def _create_slide(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Append a slide with a predefined layout."""
        presentation_id = arguments["presentationId"]
        layout = arguments.get("layout", "TITLE_AND_BODY")

        url = f"{SLIDES_API_BASE}/presentations/{path_segment(presentation_id)}:batchUpdate"
        response = await self._make_request(
            "POST",
            url,
            json_data={
                "requests": [
                    {"createSlide": {"slideLayoutReference": {"predefinedLayout": layout}}}
                ]
            },
        )

        return {
            "presentationId": presentation_id,
            "replies": response.get("replies"),
            "status": "slide_created",
        }

    # =========================================================================
    # People Operations
    # =========================================================================

    @staticmethod
    def _summarize_person(person: dict[str, Any]) -> dict[str, Any]:
        return {
            "resourceName": person.get("resourceName"),
            "names": [n.get("displayName") for n in person.get("names", [])],
            "emailAddresses": [e.get("value") for e in person.get("emailAddresses", [])],
            "phoneNumbers": [p.get("value") for p in person.get("phoneNumbers", [])],
        }

    async def _list_contacts(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """List the user's contacts, one page at a time.

        Args:
            arguments: Tool arguments with pageSize and pageToken.

        Returns:
            Contacts plus paging totals.
        """
        params: dict[str, Any] = {
            "pageSize": int(arguments.get("pageSize", 50)),
            "personFields": CONTACT_FIELDS,
        }
        if arguments.get("pageToken"):
            params["pageToken"] = arguments["pageToken"]

        url = f"{PEOPLE_API_BASE}/people/me/connections"
        response = await self._make_request("GET", url, params=params)

        contacts = []
        for person in response.get("connections", []):
            contact = self._summarize_person(person)
            contact["etag"] = person.get("etag")
            contact["organizations"] = [o.get("name") for o in person.get("organizations", [])]
            contacts.append(contact)

        return {
            "nextPageToken": response.get("nextPageToken"),
            "totalPeople": response.get("totalPeople"),
            "totalItems": response.get("totalItems"),
            "contacts": contacts,
        }

    async def _search_contacts(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Search contacts by name, email or phone."""
        url = f"{PEOPLE_API_BASE}/people:searchContacts"
        response = await self._make_request(
            "GET",
            url,
            params={
                "query": arguments["query"],
                "pageSize": int(arguments.get("pageSize", 20)),
                "readMask": CONTACT_FIELDS,
            },
        )

        results = [
            self._summarize_person(result.get("person", {}))
            for result in response.get("results", [])
        ]
        return {"results": results}

    async def _create_contact(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Create a contact."""
        name: dict[str, Any] = {"givenName": arguments["givenName"]}
        if arguments.get("familyName"):
            name["familyName"] = arguments["familyName"]

        person: dict[str, Any] = {"names": [name]}
        if arguments.get("email"):
            person["emailAddresses"] = [{"value": arguments["email"]}]
        if arguments.get("phone"):
            person["phoneNumbers"] = [{"value": arguments["phone"]}]
        if arguments.get("company"):
            person["organizations"] = [{"name": arguments["company"]}]

        url = f"{PEOPLE_API_BASE}/people:createContact"
        response = await self._make_request("POST", url, json_data=person)

        return {
            "resourceName": response.get("resourceName"),
            "etag": response.get("etag"),
            "status": "created",
        }

    async def _get_contact(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Get one contact by resource name."""
        resource_name = arguments["resourceName"]

        url = f"{PEOPLE_API_BASE}/{path_segment(resource_name, safe='/')}"
        person = await self._make_request(
            "GET", url, params={"personFields": f"{CONTACT_FIELDS},biographies"}
        )

        contact = self._summarize_person(person)
        contact["etag"] = person.get("etag")
        contact["organizations"] = [o.get("name") for o in person.get("organizations", [])]
        return contact

    async def run(self) -> None:
        """Run the MCP server using stdio transport."""
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            await self.close()


async def serve(manager: OAuthManager | None = None) -> None:
    """Authenticate, then serve MCP over stdio until the client disconnects.

    Args:
        manager: OAuth manager to authenticate with. Built from the
            environment if not provided.
    """
    manager = manager or OAuthManager()
    session = await manager.acquire_session()
    logger.info("Authenticated, starting MCP server on stdio")
    await GoogleWorkspaceServer(session).run()


def main() -> None:
    """Entry point for the Google Workspace MCP server."""
    logging.basicConfig(level=get_log_level())
    try:
        asyncio.run(serve())
    except WorkspaceAuthError as e:
        logger.error(f"Authentication failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
