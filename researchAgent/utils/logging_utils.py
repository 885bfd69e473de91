"""Logging utilities for the research supervisor.

``setup_logging`` routes the ``researchAgent``, ``researchViewer`` and
``shared`` loggers to a timestamped file under ``logs/`` (DEBUG) and to the
console (configurable level). The ``log_*`` helpers give tool calls, rounds
and routing one consistent shape across nodes.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional

LOGS_DIR = Path("logs")

LOGGER_NAMES = ("researchAgent", "researchViewer", "shared")

# Max characters of tool args / outcome text written to DEBUG lines
_preview_length = 500


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    preview_length: Optional[int] = None,
) -> logging.Logger:
    """Setup logging configuration for the research packages.

    Args:
        level: Console logging level (default: INFO)
        log_dir: Directory for the detailed log file (default: ./logs)
        preview_length: Truncation of tool args and outcomes in DEBUG lines
            (see LOG_PROMPT_MAX_LENGTH)

    Returns:
        The configured ``researchAgent`` logger
    """
    global _preview_length
    if preview_length:
        _preview_length = preview_length

    log_dir = log_dir or LOGS_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"research_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    # File is only created once something is logged
    file_handler = logging.FileHandler(log_file, encoding="utf-8", delay=True)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    for name in LOGGER_NAMES:
        package_logger = logging.getLogger(name)
        package_logger.setLevel(logging.DEBUG)
        package_logger.propagate = False
        package_logger.handlers = [file_handler, console_handler]

    logger = logging.getLogger("researchAgent")
    logger.debug(f"Research session log: {log_file}")
    return logger


def preview(value: Any, limit: Optional[int] = None) -> str:
    """Single-line, truncated rendering of a payload for log lines."""
    limit = limit or _preview_length
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False, default=str)
    text = " ".join(text.split())
    if len(text) > limit:
        return f"{text[:limit]}... ({len(text)} chars)"
    return text


def log_tool_call(logger: logging.Logger, task: Any) -> None:
    """Log the dispatch of one tool call (a ``Task``)."""
    logger.info(f"[{task.id}] → {task.name}")
    logger.debug(f"[{task.id}]   args: {preview(task.args)}")


def log_tool_result(logger: logging.Logger, task: Any, outcome: Any) -> None:
    """Log the outcome recorded for one tool call.

    Failures and refusals are logged at WARNING so they reach the console
    at the default CLI level.
    """
    level = logging.INFO if outcome.ok else logging.WARNING
    logger.log(level, f"[{task.id}] ← {task.name}: {outcome.kind.value}")
    logger.debug(f"[{task.id}]   content: {preview(outcome.content)}")


def log_error(logger: logging.Logger, error: Exception, context: str = "") -> None:
    """Log error with context and, when present, the user-facing message."""
    where = f" during {context}" if context else ""
    logger.error(f"{type(error).__name__}{where}: {error}")
    user_message = getattr(error, "user_message", None)
    if user_message and user_message != str(error):
        logger.error(f"  User message: {user_message}")
    logger.debug("Traceback:", exc_info=error)


def log_routing_decision(logger: logging.Logger, from_node: str, decision: str, reason: str = "") -> None:
    suffix = f" ({reason})" if reason else ""
    logger.info(f"Route {from_node} → {decision}{suffix}")


def log_round_summary(
    logger: logging.Logger,
    round_number: int,
    max_rounds: int,
    outcomes: Iterable[Any],
    exhausted: bool = False,
) -> None:
    """Log the ledger of one supervisor round.

    Args:
        logger: Logger instance
        round_number: 1-based round number
        max_rounds: Configured round limit
        outcomes: (task_id, TaskOutcome) pairs recorded this round
        exhausted: Whether the iteration limit applied to this round
    """
    pairs = list(outcomes)
    counts: dict = {}
    for _, outcome in pairs:
        counts[outcome.kind.value] = counts.get(outcome.kind.value, 0) + 1

    breakdown = ", ".join(f"{kind}={count}" for kind, count in sorted(counts.items())) or "empty"
    limit = " (limit reached)" if exhausted else ""
    logger.info(f"Round {round_number}/{max_rounds}{limit}: {len(pairs)} ledger entries [{breakdown}]")
    for task_id, outcome in pairs:
        logger.debug(f"  {task_id}: {outcome.kind.value}")
