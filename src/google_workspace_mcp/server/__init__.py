"""MCP server implementation for Google Workspace.

Provides:
- 45 tools across Gmail, Calendar, Drive, Docs, Sheets, Slides and People
- Stdio transport for MCP clients
- Tool schemas and handlers
"""

from google_workspace_mcp.server.google_workspace_server import (
    GoogleWorkspaceServer,
    main,
    serve,
)

__all__ = ["GoogleWorkspaceServer", "main", "serve"]
