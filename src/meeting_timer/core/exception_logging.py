"""Send uncaught exceptions from the main thread and worker threads to the log file."""

from __future__ import annotations

import logging
import sys
import threading
from types import TracebackType
from typing import Callable, Optional, Type

_LOGGER = logging.getLogger("meeting_timer.crash")

_previous_sys_hook: Optional[Callable[..., None]] = None
_previous_thread_hook: Optional[Callable[[threading.ExceptHookArgs], None]] = None


def _record(
    exc_type: Type[BaseException],
    exc_value: BaseException,
    exc_traceback: Optional[TracebackType],
    thread_name: str,
) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        return
    _LOGGER.critical(
        "Unhandled %s in %s",
        exc_type.__name__,
        thread_name,
        exc_info=(exc_type, exc_value, exc_traceback),
        extra={"event": "unhandled_exception", "source_thread": thread_name},
    )


def _sys_hook(exc_type, exc_value, exc_traceback) -> None:
    _record(exc_type, exc_value, exc_traceback, threading.current_thread().name)
    (_previous_sys_hook or sys.__excepthook__)(exc_type, exc_value, exc_traceback)


def _thread_hook(args: threading.ExceptHookArgs) -> None:
    name = args.thread.name if args.thread is not None else "unknown thread"
    _record(args.exc_type, args.exc_value, args.exc_traceback, name)
    if _previous_thread_hook is not None:
        _previous_thread_hook(args)


def is_installed() -> bool:
    return sys.excepthook is _sys_hook


def install_global_exception_logger() -> None:
    """Chain the logging hooks in front of whatever hooks are currently active."""
    global _previous_sys_hook, _previous_thread_hook
    if is_installed():
        return
    _previous_sys_hook = sys.excepthook
    _previous_thread_hook = threading.excepthook
    sys.excepthook = _sys_hook
    threading.excepthook = _thread_hook


def uninstall_global_exception_logger() -> None:
    global _previous_sys_hook, _previous_thread_hook
    if not is_installed():
        return
    sys.excepthook = _previous_sys_hook or sys.__excepthook__
    threading.excepthook = _previous_thread_hook or threading.__excepthook__
    _previous_sys_hook = None
    _previous_thread_hook = None
