"""
Logging for oevbot.

Every record carries the bid cycle it belongs to: the orchestrator sets
the current phase and bid id with `cycle_context`, and the handlers
installed by `setup_logging` render them as `[PHASE bid]` after the level.
Records logged outside a cycle show `[- -]`.
"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Iterator, Optional

import colorlog

NO_CONTEXT = "-"

_phase: ContextVar[str] = ContextVar("oevbot_phase", default=NO_CONTEXT)
_bid: ContextVar[str] = ContextVar("oevbot_bid", default=NO_CONTEXT)

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


# =============================================================================
# Cycle context
# =============================================================================


class CycleContextFilter(logging.Filter):
    """Stamps records with the current cycle phase and bid id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.phase = _phase.get()
        record.bid = _bid.get()
        return True


def set_phase(phase: str) -> None:
    _phase.set(phase)


def set_bid(bid_id: str) -> None:
    """Tag subsequent records with a bid id (shortened to 10 chars)."""
    _bid.set(bid_id[:10])


@contextmanager
def cycle_context() -> Iterator[None]:
    """Scope phase and bid tags to one cycle; both reset on exit."""
    phase_token = _phase.set(NO_CONTEXT)
    bid_token = _bid.set(NO_CONTEXT)
    try:
        yield
    finally:
        _phase.reset(phase_token)
        _bid.reset(bid_token)


# =============================================================================
# Setup
# =============================================================================


class BotLogger:
    """Owns the handlers of the `oevbot` logger tree"""

    _initialized = False

    @classmethod
    def setup(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[str] = None,
        log_to_file: bool = False,
    ):
        """
        Install console (and optionally file) handlers, replacing any
        installed earlier.

        Args:
            level: Logging level
            log_dir: Directory for oevbot.log; ./logs when None
            log_to_file: Whether to also write logs to file
        """
        root_logger = logging.getLogger("oevbot")
        root_logger.setLevel(level)
        root_logger.handlers.clear()

        console_handler = colorlog.StreamHandler(sys.stdout)
        console_handler.setFormatter(colorlog.ColoredFormatter(
            "%(log_color)s%(asctime)s %(levelname)-8s%(reset)s "
            "[%(phase)s %(bid)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
            log_colors=LOG_COLORS,
        ))
        handlers = [console_handler]

        if log_to_file:
            path = Path(log_dir) if log_dir else Path("logs")
            path.mkdir(exist_ok=True, parents=True)
            file_handler = logging.FileHandler(path / "oevbot.log")
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s %(levelname)-8s [%(phase)s %(bid)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            ))
            handlers.append(file_handler)

        for handler in handlers:
            handler.setLevel(level)
            handler.addFilter(CycleContextFilter())
            root_logger.addHandler(handler)

        cls._initialized = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if not cls._initialized:
            cls.setup()
        return logging.getLogger(f"oevbot.{name}")


def get_logger(name: str) -> logging.Logger:
    """Logger for a subsystem ('award', 'quotes', ...)"""
    return BotLogger.get_logger(name)


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = False,
):
    BotLogger.setup(level=level, log_dir=log_dir, log_to_file=log_to_file)
