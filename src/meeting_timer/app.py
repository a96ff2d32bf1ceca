"""Console entry point for ``meeting-timer``."""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence

from .app_controller import EXIT_FAILURE, run_app

LOGGER = logging.getLogger("meeting_timer.main")

EXIT_INTERRUPTED = 130


def main(argv: Sequence[str] | None = None) -> int:
    try:
        exit_code = run_app(list(argv) if argv is not None else None)
    except KeyboardInterrupt:
        LOGGER.info("Interrupted by user", extra={"event": "app_interrupted"})
        sys.stderr.write("Interrupted\n")
        return EXIT_INTERRUPTED
    except Exception:
        LOGGER.exception("Fatal error during command execution", extra={"event": "app_crash"})
        sys.stderr.write("Unexpected error; see the log file for details\n")
        return EXIT_FAILURE
    LOGGER.info("Command finished", extra={"event": "app_exit", "code": exit_code})
    return exit_code
