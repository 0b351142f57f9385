"""Google Workspace MCP Server.

Expose Gmail, Calendar, Drive, Docs, Sheets, Slides and Contacts to MCP
clients, authenticating with a locally stored Google OAuth token.
"""

from google_workspace_mcp.__version__ import __version__

__all__ = ["__version__"]
