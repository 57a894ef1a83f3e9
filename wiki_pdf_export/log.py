"""
Console logging for the exporter.

The converter only needs an object with a ``log(message)`` method. ConsoleLogger
is the default one: coloured, level-prefixed lines printed to stdout.
"""

import threading
from typing import Protocol

from colorama import init, Fore, Style

# Initialize colorama for cross-platform colored output
init(autoreset=True)


class Logger(Protocol):
    """Anything that accepts human-readable progress messages."""

    def log(self, message: str) -> None:  # pragma: no cover - interface
        ...


class ConsoleLogger:
    """Coloured console logger (thread-safe)."""

    def __init__(self, debug: bool = False):
        self.debug_enabled = debug
        self._lock = threading.Lock()

    def log(self, message: str) -> None:
        """Progress message from the conversion core."""
        self.info(message)

    def debug(self, message: str) -> None:
        """Log debug message with color (only if debug mode is enabled)."""
        if self.debug_enabled:
            with self._lock:
                print(f"{Fore.CYAN}[DEBUG]{Style.RESET_ALL} {message}")

    def info(self, message: str) -> None:
        """Log info message with color."""
        with self._lock:
            print(f"{Fore.GREEN}[INFO]{Style.RESET_ALL} {message}")

    def warning(self, message: str) -> None:
        """Log warning message with color."""
        with self._lock:
            print(f"{Fore.YELLOW}[WARNING]{Style.RESET_ALL} {message}")

    def error(self, message: str) -> None:
        """Log error message with color."""
        with self._lock:
            print(f"{Fore.RED}[ERROR]{Style.RESET_ALL} {message}")

    def success(self, message: str) -> None:
        """Log success message with color."""
        with self._lock:
            print(f"{Fore.GREEN}[OK]{Style.RESET_ALL} {message}")


def log_debug(logger: Logger, message: str) -> None:
    """Send a debug line to loggers that distinguish levels, drop it otherwise."""
    debug = getattr(logger, "debug", None)
    if callable(debug):
        debug(message)


def log_warning(logger: Logger, message: str) -> None:
    """Send a warning to loggers that have a warning channel, else plain log."""
    warning = getattr(logger, "warning", None)
    if callable(warning):
        warning(message)
    else:
        logger.log(message)
