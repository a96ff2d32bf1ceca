"""Executable entry point for ``python -m meeting_timer``."""

from __future__ import annotations

import sys

from meeting_timer.app import main


if __name__ == "__main__":
    sys.exit(main())
