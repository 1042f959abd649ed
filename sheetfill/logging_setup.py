"""Process-wide logging for sheetfill, rendered by nfo.

Modules log through `logging.getLogger("sheetfill.<module>")` only. The CLI
calls setup_logging() once per process; records from those loggers are
bridged into an nfo terminal sink on stderr (stdout stays clean for cell
values) and, when SHEETFILL_LOG_FILE is set, a markdown log of the run.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from nfo.configure import configure
from nfo.logger import Logger
from nfo.sinks import MarkdownSink
from nfo.terminal import TerminalSink

_logger: Optional[Logger] = None

# Backend client loggers; at INFO they log every HTTP request.
_QUIET_LOGGERS = ("LiteLLM", "litellm", "httpx", "httpcore", "openai")


def setup_logging(level: str = "INFO", log_file: str | Path | None = None) -> Logger:
    """Configure nfo for the process. Later calls return the first logger unchanged."""
    global _logger
    if _logger is not None:
        return _logger

    sinks: list = [TerminalSink(format="markdown", stream=sys.stderr, show_duration=True, show_traceback=True)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        sinks.append(MarkdownSink(file_path=str(log_file)))

    from sheetfill import __version__

    _logger = configure(
        name="sheetfill",
        level=level.upper(),
        sinks=sinks,
        bridge_stdlib=True,
        propagate_stdlib=False,
        env_prefix="SHEETFILL_NFO_",
        version=__version__,
        force=True,
    )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    import litellm
    litellm.suppress_debug_info = True

    logging.getLogger("sheetfill.logging_setup").debug(
        f"Logging at {level.upper()}" + (f", markdown log at {log_file}" if log_file else "")
    )
    return _logger
