"""
bondpool Logging
================

Thread-safe logging setup for the reserve pool and auction engines. Built on
the standard `logging` library, with `rich` rendering the console output.

Usage:
    >>> from bondpool.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Auction #3 started by alice")
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
    LOG_LEVEL,
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_MAX_FILE_SIZE,
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_FILE_OUTPUT,
)


PROJECT_ROOT = Path(__file__).parent.parent
LOG_FILE_PATH = PROJECT_ROOT / "logs" / "bondpool.log"

_FORMAT_SPECIFIER_PATTERN = r"\([a-zA-Z_][a-zA-Z0-9_]*\)[a-zA-Z]"


class LogManager:
    """
    Configures the logging subsystem exactly once (singleton).

    Attaches a Rich console handler and, when enabled, a rotating file
    handler to the root logger.
    """

    _instance: Optional["LogManager"] = None
    _lock: threading.Lock = threading.Lock()


    def __new__(cls) -> "LogManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance


    def __init__(self) -> None:
        if self._initialized:
            return
        self._configured = False
        self._initialized = True


    @staticmethod
    def validate_log_format(log_format: str) -> str:
        """
        Validates a logging format string.

        Every `(name)x` specifier must be preceded by `%`, and formatting a
        dummy record must consume all of them.

        Args:
            log_format (str): The logging format string.

        Returns:
            str: The format string, or the default `LOG_FORMAT` if it is invalid.
        """
        if not log_format:
            return str(LOG_FORMAT.default())

        log_format = str(log_format)
        paren_pattern = re.compile(_FORMAT_SPECIFIER_PATTERN)
        for match in paren_pattern.finditer(log_format):
            start_pos = match.start()
            if start_pos == 0 or log_format[start_pos - 1] != "%":
                return LogManager._fallback_format("Malformed format specifier")

        formatter = logging.Formatter(fmt=log_format)
        record = logging.LogRecord(
            name="test", level=logging.INFO, pathname="", lineno=0,
            msg="test", args=(), exc_info=None,
        )
        try:
            formatted_output = formatter.format(record)
        except (KeyError, ValueError, TypeError) as e:
            return LogManager._fallback_format(str(e))

        if re.search(_FORMAT_SPECIFIER_PATTERN, formatted_output):
            return LogManager._fallback_format("Format specifiers not processed")

        return log_format


    @staticmethod
    def _fallback_format(reason: str) -> str:
        print(
            f"{time.strftime(str(LOG_DATE_FORMAT.default()))} - bondpool.logger - "
            f"Invalid log format ({reason}). Using default.",
            file=sys.stderr,
        )
        return str(LOG_FORMAT.default())


    @staticmethod
    def validate_date_format(date_format: str) -> str:
        """
        Validates a date format string against strftime directives.

        Args:
            date_format (str): The date format string (e.g., "%Y-%m-%d").

        Returns:
            str: The date format, or the default if it is invalid.
        """
        if not date_format:
            return str(LOG_DATE_FORMAT.default())

        date_format = str(date_format)
        date_format_pattern = re.compile(
            r"^(?=.*%(?!%)(?:[EO])?(?:[-_0^#])*(?:[A-DF-HIM-NPR-VW-Za-hj-lm-npr-uw-z]))"
            r"(?:%%|%(?:[EO])?(?:[-_0^#])*(?:[A-DF-HIM-NPR-VW-Za-hj-lm-npr-uw-z])|[0-9 \t:\-\/\.,TZ+])+$"
        )
        if not date_format_pattern.match(date_format):
            print(
                f"{time.strftime(str(LOG_DATE_FORMAT.default()))} - bondpool.logger - "
                f"Invalid date format. Using default.",
                file=sys.stderr,
            )
            return str(LOG_DATE_FORMAT.default())

        return date_format


    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
        console_highlighting: Optional[bool] = None,
    ) -> None:
        """
        Configures the root logger with console and file handlers.

        Args:
            log_level (Optional[str]): Logging level (DEBUG, INFO, etc.). Defaults to `LOG_LEVEL`.
            log_file (Optional[Path]): Path to the log file. Defaults to `logs/bondpool.log`.
            console_output (bool): Enable console logging. Defaults to True.
            file_output (Optional[bool]): Enable rotating file logging. Defaults to `LOG_FILE_OUTPUT`.
            console_highlighting (Optional[bool]): Rich console output. Defaults to `LOG_CONSOLE_HIGHLIGHTING`.
        """
        with self._lock:
            if self._configured:
                return

            level_str = log_level or LOG_LEVEL
            numeric_level = getattr(logging, str(level_str).upper(), logging.INFO)
            if file_output is None:
                file_output = bool(LOG_FILE_OUTPUT)
            if console_highlighting is None:
                console_highlighting = bool(LOG_CONSOLE_HIGHLIGHTING)

            root_logger = logging.getLogger()
            root_logger.setLevel(numeric_level)
            root_logger.handlers.clear()

            log_format = self.validate_log_format(LOG_FORMAT)
            date_format = self.validate_date_format(LOG_DATE_FORMAT)

            formatter = TerminalSafeFormatter(fmt=log_format, datefmt=date_format + " UTC")
            formatter.converter = time.gmtime

            if console_output:
                if console_highlighting:
                    bondpool_theme = Theme(
                        {
                            "bondpool.auction":        "bold magenta",
                            "bondpool.amount":         "bold cyan",
                            "bondpool.arrow":          "bold yellow",
                            "bondpool.level_critical": "bold red reverse",
                            "bondpool.level_debug":    "bold dim",
                            "bondpool.level_error":    "bold red",
                            "bondpool.level_info":     "bold green",
                            "bondpool.level_warning":  "bold yellow",
                            "bondpool.logger_name":    "magenta",
                            "bondpool.state":          "bold white",
                            "bondpool.timestamp":      "bold cyan",
                        }
                    )

                    console = Console(theme=bondpool_theme, highlight=False)

                    rich_handler = RichHandler(
                        console=console,
                        highlighter=BondPoolLogHighlighter(),
                        keywords=[],
                        rich_tracebacks=True,
                        omit_repeated_times=False,
                        show_path=False,
                        show_time=False,
                        show_level=False,
                        markup=False,
                    )
                    rich_handler.setLevel(numeric_level)
                    rich_handler.setFormatter(formatter)
                    root_logger.addHandler(rich_handler)
                else:
                    console_handler = logging.StreamHandler(sys.stdout)
                    console_handler.setLevel(numeric_level)
                    console_handler.setFormatter(formatter)
                    root_logger.addHandler(console_handler)

            if file_output:
                log_file_path = log_file or LOG_FILE_PATH
                log_file_path.parent.mkdir(parents=True, exist_ok=True)

                file_handler = logging.handlers.RotatingFileHandler(
                    filename=str(log_file_path),
                    maxBytes=LOG_MAX_FILE_SIZE,
                    backupCount=LOG_BACKUP_COUNT,
                    encoding="utf-8",
                )
                file_handler.setLevel(numeric_level)
                file_handler.setFormatter(formatter)
                root_logger.addHandler(file_handler)

            self._configured = True


    def get_logger(self, name: str) -> logging.Logger:
        """
        Retrieves a logger for a module, configuring logging on first use.

        Args:
            name (str): The logger name (typically `__name__`).
        """
        if not self._configured:
            self.configure()
        return logging.getLogger(name)


    def reconfigure(self, **kwargs) -> None:
        """Drop the current handlers and configure again (see `configure`)."""
        with self._lock:
            self._configured = False
        self.configure(**kwargs)


    @property
    def is_configured(self) -> bool:
        return self._configured


class TerminalSafeFormatter(logging.Formatter):
    """
    Formatter that strips ANSI escape sequences and control characters.

    Token ids and addresses come from callers, so they are sanitized before
    reaching a terminal or log file.
    """

    _ansi_escape_re = re.compile(
        r"\x1b\[[0-?]*[ -/]*[@-~]"
        r"|\x1b[@-Z\\-_]"
    )
    # Control chars (0x00-0x1F) except Tab and Newline
    _control_chars_re = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
    _carriage_return_re = re.compile(r"\r")


    @classmethod
    def sanitize(cls, text: str) -> str:
        if not text:
            return text
        text = cls._ansi_escape_re.sub("", text)
        text = cls._carriage_return_re.sub("", text)
        text = cls._control_chars_re.sub("", text)
        return text


    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class BondPoolLogHighlighter(RegexHighlighter):
    """Highlights auction ids, amounts, states and transfer arrows."""

    base_style = "bondpool."
    highlights = [
        r"(?P<arrow>(\-\->)|(<--)|(→))",
        r"(?P<auction>#\d+)",
        r"(?P<amount>\b(amount|price|reserve|entries)=\d+\b)",
        r"(?P<level_critical>\bCRITICAL\b)",
        r"(?P<level_debug>\bDEBUG\b)",
        r"(?P<level_error>\bERROR\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"\-\s+\w+\s+-\s+(?P<logger_name>[\w.]+)(?=\s-\s)",
        r"(?P<state>\b(STARTED|COMPLETED|CANCELLED)\b)",
        r"(?P<timestamp>^(.*?)UTC)",
    ]


_manager = LogManager()

def get_logger(name: str) -> logging.Logger:
    """
    Public accessor of the logging system.

    Args:
        name (str): The name of the module requesting the logger.

    Returns:
        logging.Logger: The configured logger instance.
    """
    return _manager.get_logger(name)


def reconfigure(**kwargs) -> None:
    """Re-apply logging settings, e.g. from a loaded config file."""
    _manager.reconfigure(**kwargs)

# Configure on import so loggers are usable immediately
_manager.configure()
