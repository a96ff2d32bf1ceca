"""meeting_timer package initialization."""

from ._build_info import APP_VERSION

__all__ = []

# Release tooling rewrites ``APP_VERSION``; keep a single source for the version.
__version__ = APP_VERSION
