"""
Stakeledger Logging
===================

Process-wide logging setup for the staking ledger. Console output goes
through ``rich`` with a highlighter tuned to engine log lines (pool ids,
amounts, rollbacks); an optional rotating file handler writes plain text.

Usage:
    >>> from stakeledger.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Pool created pool=0")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_DATE_FORMAT,
    LOG_FILE_ENABLED,
    LOG_FORMAT,
    LOG_LEVEL,
    LOG_MAX_FILE_SIZE,
)

LOG_FILE_PATH = Path(__file__).parent.parent / "logs" / "stakeledger.log"

LEDGER_THEME = Theme(
    {
        "stakeledger.amount":         "bold cyan",
        "stakeledger.level_critical": "bold red reverse",
        "stakeledger.level_debug":    "bold dim",
        "stakeledger.level_error":    "bold red",
        "stakeledger.level_info":     "bold green",
        "stakeledger.level_warning":  "bold yellow",
        "stakeledger.logger_name":    "magenta",
        "stakeledger.pool":           "bold magenta",
        "stakeledger.rollback":       "bold red",
        "stakeledger.timestamp":      "bold cyan",
    }
)


class LedgerLogHighlighter(RegexHighlighter):
    """Rich highlighter for engine log lines (levels, pool ids, amounts)."""

    base_style = "stakeledger."
    highlights = [
        r"(?P<level_critical>\bCRITICAL\b)",
        r"(?P<level_debug>\bDEBUG\b)",
        r"(?P<level_error>\bERROR\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"\-\s+\w+\s+-\s+(?P<logger_name>[\w.]+)(?=\s-\s)",
        r"(?P<pool>\bpool=\d+\b)",
        r"(?P<amount>\b(amount|reward|penalty)=\d+\b)",
        r"(?P<rollback>\brolled back\b)",
        r"(?P<timestamp>^(.*?)UTC)",
    ]


class TerminalSafeFormatter(logging.Formatter):
    """
    Formatter that strips ANSI escapes and control characters.

    Depositor identities are caller-supplied strings and end up in log lines.
    """

    _unsafe = re.compile(
        r"\x1b\[[0-?]*[ -/]*[@-~]"      # CSI sequences
        r"|\x1b[@-Z\\-_]"               # lone ESC sequences
        r"|[\x00-\x08\x0B-\x1F\x7F]"    # control chars except tab / newline
    )

    @classmethod
    def sanitize(cls, text: str) -> str:
        return cls._unsafe.sub("", text) if text else text

    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


def _usable_format(log_format: str) -> str:
    """*log_format* if it renders a record, else the built-in default."""
    sample = logging.LogRecord("sample", logging.INFO, "", 0, "sample", (), None)
    try:
        logging.Formatter(fmt=str(log_format)).format(sample)
    except (ValueError, KeyError, TypeError) as e:
        print(f"stakeledger.logger - bad LOG_FORMAT ({e}), using default", file=sys.stderr)
        return LOG_FORMAT.fallback
    return str(log_format)


def _usable_date_format(date_format: str) -> str:
    try:
        time.strftime(str(date_format))
    except (ValueError, TypeError):
        print("stakeledger.logger - bad LOG_DATE_FORMAT, using default", file=sys.stderr)
        return LOG_DATE_FORMAT.fallback
    return str(date_format) or LOG_DATE_FORMAT.fallback


class LogManager:
    """
    Singleton owning the root logger's handlers.

    ``configure`` runs once unless forced; ``get_logger`` configures lazily.
    """

    _instance: Optional["LogManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "LogManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._configured = False
        return cls._instance

    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
        force: bool = False,
    ) -> None:
        """
        Install handlers on the root logger.

        Args:
            log_level: Level name; defaults to LOG_LEVEL from ``.env``.
            log_file: Rotating log file path; defaults to ``logs/stakeledger.log``.
            console_output: Attach the console handler.
            file_output: Attach the file handler; defaults to LOG_FILE_ENABLED.
            force: Replace an existing configuration.
        """
        with self._lock:
            if self._configured and not force:
                return

            level = getattr(logging, str(log_level or LOG_LEVEL).upper(), logging.INFO)
            formatter = TerminalSafeFormatter(
                fmt=_usable_format(LOG_FORMAT),
                datefmt=_usable_date_format(LOG_DATE_FORMAT) + " UTC",
            )
            formatter.converter = time.gmtime

            root = logging.getLogger()
            root.setLevel(level)
            root.handlers.clear()

            if console_output:
                if LOG_CONSOLE_HIGHLIGHTING:
                    handler = RichHandler(
                        console=Console(theme=LEDGER_THEME, highlight=False),
                        highlighter=LedgerLogHighlighter(),
                        keywords=[],
                        rich_tracebacks=True,
                        show_path=False,
                        show_time=False,
                        show_level=False,
                        markup=False,
                    )
                else:
                    handler = logging.StreamHandler(sys.stdout)
                handler.setLevel(level)
                handler.setFormatter(formatter)
                root.addHandler(handler)

            if file_output is None:
                file_output = bool(LOG_FILE_ENABLED)
            if file_output:
                path = log_file or LOG_FILE_PATH
                path.parent.mkdir(parents=True, exist_ok=True)
                handler = logging.handlers.RotatingFileHandler(
                    filename=str(path),
                    maxBytes=LOG_MAX_FILE_SIZE,
                    backupCount=LOG_BACKUP_COUNT,
                    encoding="utf-8",
                )
                handler.setLevel(level)
                handler.setFormatter(formatter)
                root.addHandler(handler)

            self._configured = True

    def get_logger(self, name: str) -> logging.Logger:
        if not self._configured:
            self.configure()
        return logging.getLogger(name)

    @property
    def is_configured(self) -> bool:
        return self._configured


_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """Module logger; the logging system is configured on first use."""
    return _manager.get_logger(name)


def configure_logging(
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
    file_output: Optional[bool] = None,
) -> None:
    """Re-apply logging settings, e.g. from a loaded [logging] config section."""
    _manager.configure(
        log_level=log_level,
        log_file=log_file,
        file_output=file_output,
        force=True,
    )
