"""Version information for google-workspace-mcp."""

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path


def _get_version() -> str:
    """Get version from the source tree VERSION file, then installed metadata."""
    root_version = Path(__file__).resolve().parents[2] / "VERSION"
    if root_version.exists():
        return root_version.read_text().strip()

    try:
        return version("google-workspace-mcp")
    except PackageNotFoundError:
        return "1.0.0"


__version__ = _get_version()
