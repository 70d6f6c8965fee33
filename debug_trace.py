"""
debug_trace.py

Trace output for following a layout session: state transitions, polls,
worker results and crashes.

Enable with PARKVIEW_DEBUG_TRACE=1. Every line carries the current session
context (area, generation, state) so interleaved loads and polls can be
told apart:

    [12:04:31.118] [STATE] [area=3 gen=2 state=loading] loading -> ready

Environment:
    PARKVIEW_DEBUG_TRACE  enable tracing
    PARKVIEW_TRACE_POLL   also trace every poll tick (verbose)
    PARKVIEW_TRACE_FILE   mirror trace lines into this file
"""

import os
import sys
import time
import traceback
from datetime import datetime
from functools import wraps
from typing import Dict, Optional, TextIO


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "") not in ("", "0")


DEBUG_TRACE = _env_flag("PARKVIEW_DEBUG_TRACE")
TRACE_POLL = _env_flag("PARKVIEW_TRACE_POLL")
LOG_FILE: Optional[str] = os.environ.get("PARKVIEW_TRACE_FILE") or None

# Categories dropped unless explicitly asked for
_VERBOSE_CATEGORIES = {"POLL"}

_context: Dict[str, object] = {}
_log_file: Optional[TextIO] = None


def set_trace_context(**fields) -> None:
    """Update the session context shown on each line; None removes a field."""
    for key, value in fields.items():
        if value is None:
            _context.pop(key, None)
        else:
            _context[key] = value


def clear_trace_context() -> None:
    _context.clear()


def _format(msg: str, category: str) -> str:
    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    if _context:
        ctx = " ".join(f"{k}={v}" for k, v in _context.items())
        return f"[{timestamp}] [{category}] [{ctx}] {msg}"
    return f"[{timestamp}] [{category}] {msg}"


def _open_log_file() -> Optional[TextIO]:
    global _log_file
    if LOG_FILE and _log_file is None:
        try:
            _log_file = open(LOG_FILE, "w", encoding="utf-8")
        except OSError as e:
            print(f"debug_trace: cannot open {LOG_FILE}: {e}", file=sys.stderr)
    return _log_file


def trace(msg: str, category: str = "INFO"):
    """Emit one trace line when tracing is enabled."""
    if not DEBUG_TRACE:
        return
    if category in _VERBOSE_CATEGORIES and not TRACE_POLL:
        return

    line = _format(msg, category)
    print(line, file=sys.stderr, flush=True)

    log_file = _open_log_file()
    if log_file is not None:
        log_file.write(line + "\n")
        log_file.flush()


def trace_transition(old: str, new: str, **fields):
    """Record a session state change and carry *new* into the context."""
    set_trace_context(state=new, **fields)
    trace(f"{old} -> {new}", "STATE")


def trace_exception(msg: str = "Exception"):
    """Trace the exception currently being handled."""
    if DEBUG_TRACE:
        trace(f"{msg}: {traceback.format_exc()}", "ERROR")


def trace_call(category: str = "CALL"):
    """Decorator tracing entry, exit with elapsed time, and exceptions."""
    def decorator(func):
        if not DEBUG_TRACE:
            return func

        @wraps(func)
        def wrapper(*args, **kwargs):
            name = func.__qualname__
            trace(f">>> {name}", category)
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                trace(f"!!! {name} raised {type(e).__name__}: {e}", "ERROR")
                raise
            trace(f"<<< {name} ({(time.perf_counter() - start) * 1000:.1f} ms)", category)
            return result
        return wrapper
    return decorator


def close_log():
    """Close the trace file, if one was opened."""
    global _log_file
    if _log_file is not None:
        _log_file.close()
        _log_file = None
