"""Logging configuration for git-grove"""
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

# ANSI color codes per level
LEVEL_COLORS = {
    'DEBUG': '\033[36m',     # Cyan
    'INFO': '\033[32m',      # Green
    'WARNING': '\033[33m',   # Yellow
    'ERROR': '\033[31m',     # Red
    'CRITICAL': '\033[35m',  # Magenta
}
RESET = '\033[0m'

DETAILED_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
SHORT_FORMAT = '[%(name)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Third-party loggers that emit DEBUG records for every git call or HTTP request;
# GitCommander already logs each git command with its exit status
CHATTY_LOGGERS = ('git.cmd', 'github', 'urllib3')


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name when writing to a terminal."""

    def __init__(self, fmt: str, datefmt: Optional[str] = None, stream: Optional[TextIO] = None):
        super().__init__(fmt=fmt, datefmt=datefmt)
        stream = stream or sys.stderr
        self.use_color = hasattr(stream, 'isatty') and stream.isatty()

    def format(self, record):
        if not self.use_color or record.levelname not in LEVEL_COLORS:
            return super().format(record)
        # Work on a copy so other handlers (the debug file) see the plain level name
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{LEVEL_COLORS[record.levelname]}{record.levelname}{RESET}"
        return super().format(colored)


def setup_logging(verbose: bool = False, debug: bool = False, log_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Configure logging for one git-grove run.

    Args:
        verbose: Show INFO messages (worktree created, HEAD detached, ...)
        debug: Show DEBUG messages, including every git command and its exit status,
            and mirror everything to a log file
        log_dir: Directory for the debug log file (defaults to ~/.git-grove)

    Returns:
        Path of the debug log file, or None when debug is off
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO)

    log_file = None
    if debug:
        log_dir = log_dir or Path.home() / '.git-grove'
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / 'git-grove.log'
        file_handler = logging.FileHandler(log_file, mode='w')  # Overwrite each run
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(fmt=DETAILED_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    if debug:
        console_handler.setFormatter(ColoredFormatter(DETAILED_FORMAT, DATE_FORMAT, sys.stderr))
    else:
        console_handler.setFormatter(ColoredFormatter(SHORT_FORMAT, stream=sys.stderr))
    root_logger.addHandler(console_handler)

    return log_file


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, named without the package prefixes (e.g. 'path_allocator')."""
    for prefix in ('git_grove.', 'services.'):
        if name.startswith(prefix):
            name = name[len(prefix):]
    return logging.getLogger(name)
