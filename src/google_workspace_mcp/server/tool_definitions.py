"""MCP tool schemas for the Google Workspace server.

Argument names follow the camelCase wire names agents already use
(``messageId``, ``calendarId``, ``maxResults``...).
"""

from mcp.types import Tool

CALENDAR_ID_PROPERTY = {
    "type": "string",
    "description": 'Calendar ID (default: "primary")',
}
MESSAGE_ID_PROPERTY = {"type": "string", "description": "Gmail message ID"}
FILE_ID_PROPERTY = {"type": "string", "description": "File ID"}
VALUES_PROPERTY = {
    "type": "array",
    "items": {
        "type": "array",
        "items": {"type": ["string", "number", "boolean"]},
    },
    "description": "2D array of values (rows of cells)",
}
VALUE_INPUT_OPTION_PROPERTY = {
    "type": "string",
    "enum": ["RAW", "USER_ENTERED"],
    "description": "How input is interpreted (default: USER_ENTERED)",
}


def _email_composition_schema() -> dict:
    return {
        "type": "object",
        "properties": {
            "to": {"type": "string", "description": "Recipient email address"},
            "subject": {"type": "string", "description": "Email subject"},
            "body": {"type": "string", "description": "Email body text"},
            "cc": {"type": "string", "description": "CC recipients (optional)"},
            "bcc": {"type": "string", "description": "BCC recipients (optional)"},
        },
        "required": ["to", "subject", "body"],
    }


def _message_id_schema() -> dict:
    return {
        "type": "object",
        "properties": {"messageId": MESSAGE_ID_PROPERTY},
        "required": ["messageId"],
    }


def _no_arguments_schema() -> dict:
    return {"type": "object", "properties": {}, "required": []}


GMAIL_TOOLS = [
    Tool(
        name="search_emails",
        description=(
            'Search emails using Gmail query syntax (e.g., "is:unread", "from:example@gmail.com")'
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Gmail search query"},
                "maxResults": {
                    "type": "number",
                    "description": "Maximum number of results (default: 10)",
                },
            },
            "required": ["query"],
        },
    ),
    Tool(
        name="read_email",
        description="Read a specific email by its message ID",
        inputSchema=_message_id_schema(),
    ),
    Tool(
        name="send_email",
        description="Send a new email",
        inputSchema=_email_composition_schema(),
    ),
    Tool(
        name="reply_to_email",
        description="Reply to an existing email",
        inputSchema={
            "type": "object",
            "properties": {
                "messageId": {"type": "string", "description": "ID of message to reply to"},
                "body": {"type": "string", "description": "Reply body text"},
            },
            "required": ["messageId", "body"],
        },
    ),
    Tool(
        name="create_draft",
        description="Create an email draft",
        inputSchema=_email_composition_schema(),
    ),
    Tool(
        name="trash_email",
        description="Move an email to trash",
        inputSchema=_message_id_schema(),
    ),
    Tool(
        name="mark_as_read",
        description="Mark an email as read",
        inputSchema=_message_id_schema(),
    ),
    Tool(
        name="mark_as_unread",
        description="Mark an email as unread",
        inputSchema=_message_id_schema(),
    ),
    Tool(
        name="list_labels",
        description="List all Gmail labels",
        inputSchema=_no_arguments_schema(),
    ),
    Tool(
        name="add_label",
        description="Add a label to a message",
        inputSchema={
            "type": "object",
            "properties": {
                "messageId": MESSAGE_ID_PROPERTY,
                "labelId": {"type": "string", "description": "Label ID to add"},
            },
            "required": ["messageId", "labelId"],
        },
    ),
    Tool(
        name="get_profile",
        description="Get Gmail profile information",
        inputSchema=_no_arguments_schema(),
    ),
]

CALENDAR_TOOLS = [
    Tool(
        name="list_calendars",
        description="List all available calendars",
        inputSchema=_no_arguments_schema(),
    ),
    Tool(
        name="list_events",
        description="List upcoming calendar events",
        inputSchema={
            "type": "object",
            "properties": {
                "calendarId": CALENDAR_ID_PROPERTY,
                "maxResults": {
                    "type": "number",
                    "description": "Maximum number of results (default: 10)",
                },
                "timeMin": {
                    "type": "string",
                    "description": "Start time (ISO 8601 format, default: now)",
                },
                "timeMax": {"type": "string", "description": "End time (ISO 8601 format)"},
            },
            "required": [],
        },
    ),
    Tool(
        name="get_event",
        description="Get details of a specific calendar event",
        inputSchema={
            "type": "object",
            "properties": {
                "calendarId": CALENDAR_ID_PROPERTY,
                "eventId": {"type": "string", "description": "Event ID"},
            },
            "required": ["eventId"],
        },
    ),
    Tool(
        name="create_event",
        description="Create a new calendar event",
        inputSchema={
            "type": "object",
            "properties": {
                "calendarId": CALENDAR_ID_PROPERTY,
                "summary": {"type": "string", "description": "Event title"},
                "description": {"type": "string", "description": "Event description"},
                "location": {"type": "string", "description": "Event location"},
                "start": {"type": "string", "description": "Start time (ISO 8601 format)"},
                "end": {"type": "string", "description": "End time (ISO 8601 format)"},
                "attendees": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Attendee email addresses",
                },
                "timeZone": {"type": "string", "description": "Time zone"},
            },
            "required": ["summary", "start", "end"],
        },
    ),
    Tool(
        name="update_event",
        description="Update an existing calendar event",
        inputSchema={
            "type": "object",
            "properties": {
                "calendarId": CALENDAR_ID_PROPERTY,
                "eventId": {"type": "string", "description": "Event ID"},
                "summary": {"type": "string", "description": "Event title"},
                "description": {"type": "string", "description": "Event description"},
                "location": {"type": "string", "description": "Event location"},
                "start": {"type": "string", "description": "Start time (ISO 8601 format)"},
                "end": {"type": "string", "description": "End time (ISO 8601 format)"},
                "attendees": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Attendee email addresses",
                },
            },
            "required": ["eventId"],
        },
    ),
    Tool(
        name="delete_event",
        description="Delete a calendar event",
        inputSchema={
            "type": "object",
            "properties": {
                "calendarId": CALENDAR_ID_PROPERTY,
                "eventId": {"type": "string", "description": "Event ID"},
            },
            "required": ["eventId"],
        },
    ),
    Tool(
        name="find_free_time",
        description="Find busy time slots across calendars",
        inputSchema={
            "type": "object",
            "properties": {
                "timeMin": {"type": "string", "description": "Start time (ISO 8601 format)"},
                "timeMax": {"type": "string", "description": "End time (ISO 8601 format)"},
                "calendars": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": 'Calendar IDs to check (default: ["primary"])',
                },
            },
            "required": ["timeMin", "timeMax"],
        },
    ),
    Tool(
        name="quick_add_event",
        description='Create event using natural language (e.g., "Lunch tomorrow at noon")',
        inputSchema={
            "type": "object",
            "properties": {
                "calendarId": CALENDAR_ID_PROPERTY,
                "text": {"type": "string", "description": "Natural language event description"},
            },
            "required": ["text"],
        },
    ),
]

DRIVE_TOOLS = [
    Tool(
        name="list_files",
        description="List files in Google Drive",
        inputSchema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Drive query string"},
                "maxResults": {
                    "type": "number",
                    "description": "Maximum number of results (default: 10)",
                },
                "orderBy": {
                    "type": "string",
                    "description": 'Order by (default: "modifiedTime desc")',
                },
            },
            "required": [],
        },
    ),
    Tool(
        name="get_file",
        description="Get metadata for a specific file",
        inputSchema={
            "type": "object",
            "properties": {"fileId": FILE_ID_PROPERTY},
            "required": ["fileId"],
        },
    ),
    Tool(
        name="search_files",
        description="Search files by name or content",
        inputSchema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search query"},
                "maxResults": {
                    "type": "number",
                    "description": "Maximum number of results (default: 20)",
                },
            },
            "required": ["query"],
        },
    ),
    Tool(
        name="create_folder",
        description="Create a new folder in Drive",
        inputSchema={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Folder name"},
                "parentId": {"type": "string", "description": "Parent folder ID (optional)"},
            },
            "required": ["name"],
        },
    ),
    Tool(
        name="delete_file",
        description="Delete a file from Drive",
        inputSchema={
            "type": "object",
            "properties": {"fileId": FILE_ID_PROPERTY},
            "required": ["fileId"],
        },
    ),
    Tool(
        name="copy_file",
        description="Create a copy of a file",
        inputSchema={
            "type": "object",
            "properties": {
                "fileId": {"type": "string", "description": "File ID to copy"},
                "name": {"type": "string", "description": "New file name (optional)"},
                "parentId": {"type": "string", "description": "Parent folder ID (optional)"},
            },
            "required": ["fileId"],
        },
    ),
    Tool(
        name="move_file",
        description="Move a file to a different folder",
        inputSchema={
            "type": "object",
            "properties": {
                "fileId": FILE_ID_PROPERTY,
                "newParentId": {"type": "string", "description": "New parent folder ID"},
            },
            "required": ["fileId", "newParentId"],
        },
    ),
    Tool(
        name="share_file",
        description="Share a file with someone",
        inputSchema={
            "type": "object",
            "properties": {
                "fileId": FILE_ID_PROPERTY,
                "email": {"type": "string", "description": "Email address to share with"},
                "role": {
                    "type": "string",
                    "enum": ["reader", "writer", "commenter"],
                    "description": "Permission role (default: reader)",
                },
                "sendNotification": {
                    "type": "boolean",
                    "description": "Send email notification (default: true)",
                },
            },
            "required": ["fileId", "email"],
        },
    ),
    Tool(
        name="get_file_content",
        description="Get content of a text file",
        inputSchema={
            "type": "object",
            "properties": {
                "fileId": FILE_ID_PROPERTY,
                "mimeType": {"type": "string", "description": "MIME type (optional)"},
            },
            "required": ["fileId"],
        },
    ),
    Tool(
        name="export_file",
        description="Export a Google Doc/Sheet/Slides to another format",
        inputSchema={
            "type": "object",
            "properties": {
                "fileId": FILE_ID_PROPERTY,
                "mimeType": {
                    "type": "string",
                    "description": 'Export MIME type (e.g., "text/plain", "text/csv")',
                },
            },
            "required": ["fileId", "mimeType"],
        },
    ),
    Tool(
        name="get_storage_quota",
        description="Get Drive storage quota information",
        inputSchema=_no_arguments_schema(),
    ),
]

DOCS_TOOLS = [
    Tool(
        name="list_doc_structure",
        description="List the structural elements (paragraphs, tables) of a Google Doc",
        inputSchema={
            "type": "object",
            "properties": {"documentId": {"type": "string", "description": "Document ID"}},
            "required": ["documentId"],
        },
    ),
    Tool(
        name="read_doc_text",
        description="Read the plain text of a Google Doc",
        inputSchema={
            "type": "object",
            "properties": {"documentId": {"type": "string", "description": "Document ID"}},
            "required": ["documentId"],
        },
    ),
    Tool(
        name="create_doc",
        description="Create a new Google Doc, optionally with initial content",
        inputSchema={
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": "Document title"},
                "content": {"type": "string", "description": "Initial text (optional)"},
            },
            "required": ["title"],
        },
    ),
    Tool(
        name="append_doc_text",
        description="Append text to the end of a Google Doc",
        inputSchema={
            "type": "object",
            "properties": {
                "documentId": {"type": "string", "description": "Document ID"},
                "text": {"type": "string", "description": "Text to append"},
            },
            "required": ["documentId", "text"],
        },
    ),
]

SHEETS_TOOLS = [
    Tool(
        name="get_sheet_values",
        description="Read values from a spreadsheet range (A1 notation)",
        inputSchema={
            "type": "object",
            "properties": {
                "spreadsheetId": {"type": "string", "description": "Spreadsheet ID"},
                "range": {"type": "string", "description": "A1 range (e.g., 'Sheet1!A1:C10')"},
            },
            "required": ["spreadsheetId", "range"],
        },
    ),
    Tool(
        name="update_sheet_values",
        description="Overwrite values in a spreadsheet range",
        inputSchema={
            "type": "object",
            "properties": {
                "spreadsheetId": {"type": "string", "description": "Spreadsheet ID"},
                "range": {"type": "string", "description": "A1 range to write"},
                "values": VALUES_PROPERTY,
                "valueInputOption": VALUE_INPUT_OPTION_PROPERTY,
            },
            "required": ["spreadsheetId", "range", "values"],
        },
    ),
    Tool(
        name="append_sheet_values",
        description="Append rows after the last row of a table in a spreadsheet",
        inputSchema={
            "type": "object",
            "properties": {
                "spreadsheetId": {"type": "string", "description": "Spreadsheet ID"},
                "range": {"type": "string", "description": "A1 range of the table"},
                "values": VALUES_PROPERTY,
                "valueInputOption": VALUE_INPUT_OPTION_PROPERTY,
            },
            "required": ["spreadsheetId", "range", "values"],
        },
    ),
    Tool(
        name="create_spreadsheet",
        description="Create a new spreadsheet",
        inputSchema={
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": "Spreadsheet title"},
                "sheetTitle": {
                    "type": "string",
                    "description": 'Title of the first sheet (default: "Sheet1")',
                },
            },
            "required": ["title"],
        },
    ),
]

SLIDES_TOOLS = [
    Tool(
        name="get_presentation",
        description="Get a presentation's title and slide list",
        inputSchema={
            "type": "object",
            "properties": {
                "presentationId": {"type": "string", "description": "Presentation ID"},
            },
            "required": ["presentationId"],
        },
    ),
    Tool(
        name="create_presentation",
        description="Create a new presentation",
        inputSchema={
            "type": "object",
            "properties": {"title": {"type": "string", "description": "Presentation title"}},
            "required": ["title"],
        },
    ),
    Tool(
        name="create_slide",
        description="Add a slide to a presentation",
        inputSchema={
            "type": "object",
            "properties": {
                "presentationId": {"type": "string", "description": "Presentation ID"},
                "layout": {
                    "type": "string",
                    "description": 'Predefined layout (default: "TITLE_AND_BODY")',
                },
            },
            "required": ["presentationId"],
        },
    ),
]

PEOPLE_TOOLS = [
    Tool(
        name="list_contacts",
        description="List the user's contacts",
        inputSchema={
            "type": "object",
            "properties": {
                "pageSize": {
                    "type": "number",
                    "description": "Contacts per page (default: 50)",
                },
                "pageToken": {"type": "string", "description": "Page token from a previous call"},
            },
            "required": [],
        },
    ),
    Tool(
        name="search_contacts",
        description="Search contacts by name, email or phone",
        inputSchema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search query"},
                "pageSize": {
                    "type": "number",
                    "description": "Maximum number of results (default: 20)",
                },
            },
            "required": ["query"],
        },
    ),
    Tool(
        name="create_contact",
        description="Create a new contact",
        inputSchema={
            "type": "object",
            "properties": {
                "givenName": {"type": "string", "description": "First name"},
                "familyName": {"type": "string", "description": "Last name (optional)"},
                "email": {"type": "string", "description": "Email address (optional)"},
                "phone": {"type": "string", "description": "Phone number (optional)"},
                "company": {"type": "string", "description": "Company name (optional)"},
            },
            "required": ["givenName"],
        },
    ),
    Tool(
        name="get_contact",
        description="Get a contact by resource name",
        inputSchema={
            "type": "object",
            "properties": {
                "resourceName": {
                    "type": "string",
                    "description": 'Contact resource name (e.g., "people/c123")',
                },
            },
            "required": ["resourceName"],
        },
    ),
]

TOOL_DEFINITIONS: list[Tool] = [
    *GMAIL_TOOLS,
    *CALENDAR_TOOLS,
    *DRIVE_TOOLS,
    *DOCS_TOOLS,
    *SHEETS_TOOLS,
    *SLIDES_TOOLS,
    *PEOPLE_TOOLS,
]
