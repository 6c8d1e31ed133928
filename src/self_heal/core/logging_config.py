"""
Logging configuration for the locator self-healing pipeline.

Console output is human-readable; the rotating files under the log directory
hold one JSON object per line so CI log collectors can index repair runs by
run id and page-object file.
"""

import json
import logging
import logging.handlers
import sys
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

HEALING_COMPONENTS = (
    "orchestrator",
    "live_verifier",
)

# file name -> (max bytes, backups kept, minimum level)
LOG_FILES = {
    "healing_all.log": (10 * 1024 * 1024, 5, logging.DEBUG),
    "healing_operations.log": (10 * 1024 * 1024, 10, logging.INFO),
    "healing_errors.log": (5 * 1024 * 1024, 10, logging.ERROR),
}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, with the repair context fields when present."""

    EXTRA_FIELDS = (
        "run_id", "file", "operation", "phase", "duration",
        "success", "error_code", "metadata",
    )

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update({name: getattr(record, name) for name in self.EXTRA_FIELDS if hasattr(record, name)})

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=self._encode)

    @staticmethod
    def _encode(value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        if is_dataclass(value) and not isinstance(value, type):
            return asdict(value)
        if isinstance(value, datetime):
            return value.isoformat()
        return str(value)


class HealingLoggerAdapter(logging.LoggerAdapter):
    """Stamps run id and file on every record and logs repair operations in phases."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs['extra'] = {**self.extra, **(kwargs.get('extra') or {})}
        return msg, kwargs

    def log_operation_start(self, operation: str, **metadata):
        self.info(f"▶️  {operation} started", extra={
            'operation': operation,
            'phase': 'start',
            'metadata': metadata,
        })

    def log_operation_success(self, operation: str, duration: float, **metadata):
        self.info(f"✅ {operation} succeeded in {duration:.2f}s", extra={
            'operation': operation,
            'phase': 'complete',
            'success': True,
            'duration': duration,
            'metadata': metadata,
        })

    def log_operation_failure(self, operation: str, duration: float, error: str,
                              error_code: Optional[str] = None, **metadata):
        self.error(f"❌ {operation} failed after {duration:.2f}s: {error}", extra={
            'operation': operation,
            'phase': 'complete',
            'success': False,
            'duration': duration,
            'error_code': error_code,
            'metadata': metadata,
        })


def _file_handler(path: Path, max_bytes: int, backup_count: int, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setFormatter(StructuredFormatter())
    handler.setLevel(level)
    return handler


def _reset_handlers(target: logging.Logger) -> None:
    for handler in target.handlers[:]:
        target.removeHandler(handler)
        handler.close()


def setup_healing_logging(log_level: str = "INFO", log_dir: str = "logs") -> Dict[str, logging.Logger]:
    """
    Configure the root logger and the per-component ``healing.*`` loggers.

    Safe to call more than once; handlers of a previous call are replaced.

    Args:
        log_level: Console and root level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for the rotating JSON log files

    Returns:
        Component name -> configured logger
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    level = getattr(logging, log_level.upper())

    handlers = {
        name: _file_handler(log_path / name, max_bytes, backups, file_level)
        for name, (max_bytes, backups, file_level) in LOG_FILES.items()
    }

    root_logger = logging.getLogger()
    _reset_handlers(root_logger)
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(handlers["healing_all.log"])

    loggers = {}
    for component in HEALING_COMPONENTS:
        component_logger = logging.getLogger(f"healing.{component}")
        _reset_handlers(component_logger)
        component_logger.addHandler(handlers["healing_operations.log"])
        component_logger.addHandler(handlers["healing_errors.log"])
        loggers[component] = component_logger

    # driver and HTTP chatter
    for noisy in ("urllib3", "selenium", "WDM"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return loggers


def get_healing_logger(component: str, run_id: Optional[str] = None,
                       file: Optional[str] = None) -> HealingLoggerAdapter:
    """Adapter over ``healing.<component>`` carrying the run id and page-object file."""
    extra = {}
    if run_id:
        extra['run_id'] = run_id
    if file:
        extra['file'] = file
    return HealingLoggerAdapter(logging.getLogger(f"healing.{component}"), extra)
