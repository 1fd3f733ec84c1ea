"""
debug_trace.py

Trace instrumentation for TikzCanvas.
Disabled by default; enable with set_trace_enabled(True) or the
TIKZCANVAS_TRACE environment variable.
"""

import os
import sys
import traceback
from datetime import datetime
from functools import wraps

# Enabled when TIKZCANVAS_TRACE is set to a non-empty value
DEBUG_TRACE = bool(os.environ.get("TIKZCANVAS_TRACE"))

# Set to True to trace paint events (very verbose)
TRACE_PAINT = False

# Log file (None for stderr only)
LOG_FILE = None

_log_file = None


def set_trace_enabled(enabled: bool, log_file: str = None):
    """Turn tracing on or off, optionally redirecting to a log file."""
    global DEBUG_TRACE, LOG_FILE
    DEBUG_TRACE = enabled
    if log_file is not None and log_file != LOG_FILE:
        close_log()
        LOG_FILE = log_file


def _get_log_file():
    global _log_file
    if LOG_FILE and _log_file is None:
        try:
            _log_file = open(LOG_FILE, "w", encoding="utf-8")
        except OSError:
            return None
    return _log_file


def trace(msg: str, category: str = "INFO"):
    """Print a trace message with timestamp."""
    if not DEBUG_TRACE:
        return
    if category == "PAINT" and not TRACE_PAINT:
        return

    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    line = f"[{timestamp}] [{category}] {msg}"

    print(line, file=sys.stderr, flush=True)

    log_file = _get_log_file()
    if log_file:
        log_file.write(line + "\n")
        log_file.flush()


def trace_exception(msg: str = "Exception"):
    """Print exception info."""
    if not DEBUG_TRACE:
        return
    trace(f"{msg}: {traceback.format_exc()}", "ERROR")


def trace_call(category: str = "CALL"):
    """Decorator to trace function calls.

    The enabled flag is checked per call so tracing can be switched on
    after the decorated module has been imported.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if not DEBUG_TRACE:
                return func(*args, **kwargs)
            func_name = func.__qualname__
            trace(f">>> {func_name}", category)
            try:
                result = func(*args, **kwargs)
                trace(f"<<< {func_name}", category)
                return result
            except Exception as e:
                trace(f"!!! {func_name} raised {type(e).__name__}: {e}", "ERROR")
                raise
        return wrapper
    return decorator


def close_log():
    """Close log file."""
    global _log_file
    if _log_file:
        _log_file.close()
        _log_file = None
