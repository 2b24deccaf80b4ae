from __future__ import annotations
import gzip
import logging
import os, sys
import shutil
import pprint
import atexit

from logging.handlers import RotatingFileHandler
from typing import Any

log_dir = "logs"
log_file = os.path.join(log_dir, "app.log")

# ========== Status Tags ==========
INIT       = "[INIT]"
START      = "[START]"
STOP       = "[STOP]"
DONE       = "[DONE]"

# ========== Persistence Tags ==========
LOAD       = "[LOAD]"
SAVE       = "[SAVE]"
CONFIG     = "[CONFIG]"

# ========== Learning & Agents ==========
LEARN      = "[LEARN]"
AGENT      = "[AGENT]"
MEMORY     = "[MEM]"
TRIGGER    = "[TRIGGER]"
CYCLE      = "[CYCLE]"
EVAL       = "[EVAL]"
DREAM      = "[DREAM]"
EVOLVE     = "[EVOLVE]"

# ========== Result Tags ==========
SUCCESS    = "[OK]"
FAILURE    = "[FAIL]"
WARN       = "[WARN]"

COLOR_CODES = {
    'RESET': "\033[0m",
    'BLUE': "\033[94m",
    'GREEN': "\033[92m",
    'YELLOW': "\033[93m",
    'RED': "\033[91m",
    'magenta': '\033[35m',
    'cyan': '\033[36m',
    'white': '\033[37m',
}
STYLES = {
    'reset': '\033[0m',
    'bold': '\033[1m',
    'dim': '\033[2m',
    'italic': '\033[3m',
    'bg_blue': '\033[44m',
    'red': '\033[91m',
    'green': '\033[92m',
    'yellow': '\033[93m',
    'blue': '\033[94m',
    'magenta': '\033[35m',
    'cyan': '\033[36m',
    'white': '\033[37m',
    'Orange1': '\033[38;5;214m',
}

# Global flag to track initialization
_logger_initialized = False

class ColorFormatter(logging.Formatter):

    def format(self, record):
        stream = getattr(sys.stdout, "isatty", None)
        if not (stream and stream()):
            return super().format(record)
        message = record.getMessage()

        if "initializ" in message.lower():
            color = COLOR_CODES['BLUE']
        elif LOAD in message or SAVE in message:
            color = COLOR_CODES['GREEN']
        elif record.levelno >= logging.CRITICAL:
            color = COLOR_CODES['RED']
        elif record.levelno >= logging.ERROR:
            color = STYLES['Orange1']
        elif record.levelno >= logging.WARNING:
            color = COLOR_CODES['YELLOW']
        else:
            color = COLOR_CODES['RESET']

        return f"{color}{super().format(record)}{COLOR_CODES['RESET']}"

class RotatingHandler(RotatingFileHandler):
    """Size-based rotation that gzips every rolled-over file."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.namer = lambda name: name + '.gz'
        self.rotator = self._compress

    @staticmethod
    def _compress(source, dest):
        try:
            with open(source, 'rb') as f_in:
                with gzip.open(dest, 'wb') as f_out:
                    shutil.copyfileobj(f_in, f_out)
            os.remove(source)
        except OSError as e:
            logging.getLogger("RotatingHandler").error(f"Compression error for {source}: {e}")

def get_logger(name: str) -> logging.Logger:
    global _logger_initialized
    logger = logging.getLogger(name)

    if not _logger_initialized:
        _logger_initialized = True
        formatter = logging.Formatter('%(asctime)s | %(levelname)s | %(name)s | %(message)s')

        root_logger = logging.getLogger()
        root_logger.setLevel(logging.INFO)

        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingHandler(
            log_file,
            maxBytes=1000000,
            backupCount=5,
            delay=True  # Defer file opening until first log
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(logging.DEBUG)
        root_logger.addHandler(file_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColorFormatter('%(asctime)s | %(levelname)s | %(name)s | %(message)s'))
        root_logger.addHandler(console_handler)

    return logger

def cleanup_logger(name):
    """
    Flush and close all handlers of a logger.
    Called at interpreter exit so the rotating file is released cleanly.
    """
    logger = logging.getLogger(name)
    for handler in logger.handlers[:]:
        handler.flush()
        handler.close()
        logger.removeHandler(handler)

def exit_handler():
    cleanup_logger(None)  # Cleanup root logger

atexit.register(exit_handler)

USE_ANSI = bool(getattr(sys.stdout, "isatty", lambda: False)())
class PrettyPrinter:
    @classmethod
    def pretty(cls, label: str, obj: Any, status: str = "info"):
        """Pretty-print structured objects (e.g., dicts, lists) in readable form"""
        formatted = pprint.pformat(obj, indent=2, width=100, compact=False)
        cls.status(label, "\n" + formatted, status)

    @classmethod
    def _style(cls, text, *styles):
        if not USE_ANSI:
            return text
        codes = []
        for style in styles:
            if style in STYLES:
                codes.append(STYLES[style])
            elif style in COLOR_CODES:
                codes.append(COLOR_CODES[style])
        return f"{''.join(codes)}{text}{STYLES['reset']}"

    @classmethod
    def table(cls, headers, rows, title=None):
        col_width = [max(len(str(item)) for item in col) for col in zip(headers, *rows)]

        if title:
            total_width = sum(col_width) + 3*(len(headers)-1)
            print(cls._style(f"╒{'═'*(total_width)}╕", 'bold', 'blue'))
            print(cls._style(f"│ {title.center(total_width)} │", 'bold', 'blue'))
            print(cls._style(f"╞{'╪'.join('═'*w for w in col_width)}╡", 'bold', 'blue'))

        header = cls._style("│ ", 'blue') + cls._style(" │ ", 'blue').join(
            cls._style(str(h).ljust(w), 'bold', 'white', 'bg_blue')
            for h, w in zip(headers, col_width)
        ) + cls._style(" │", 'blue')
        print(header)
        print(cls._style(f"├{'┼'.join('─'*w for w in col_width)}┤", 'blue'))

        for row in rows:
            cells = [cls._style(str(item).ljust(w), 'cyan') for item, w in zip(row, col_width)]
            print(cls._style("│ ", 'blue') + cls._style(" │ ", 'blue').join(cells) + cls._style(" │", 'blue'))

        print(cls._style(f"╘{'╧'.join('═'*w for w in col_width)}╛", 'bold', 'blue'))

    @classmethod
    def section_header(cls, text):
        print("\n" + cls._style("╒═══════════════════════════════", 'bold', 'magenta'))
        print(cls._style(f" {text.upper()}", 'bold', 'magenta', 'italic'))
        print(cls._style("╘═══════════════════════════════", 'bold', 'magenta'))

    @classmethod
    def status(cls, label, message, status="info"):
        status_colors = {
            'info': ('blue', 'ℹ'),
            'success': ('green', '✔'),
            'warning': ('yellow', '⚠'),
            'error': ('red', '✖')
        }
        color, icon = status_colors.get(status, ('white', '○'))
        label_text = cls._style(f"[{label}]", 'bold', color)
        print(f"{cls._style(icon, color)} {label_text} {message}")
