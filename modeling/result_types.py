"""
SteelCad - Structured Operation Reports

Multi-step operations (a propagation pass, a batch delete, a regeneration)
report their outcome through one type so callers never have to guess from
``None`` vs ``[]`` what happened:

- SUCCESS: everything requested was done
- WARNING: done, but some items were skipped
- EMPTY: nothing to do (or short-circuited), not an error
- ERROR: the operation could not run at all

Usage:
    from modeling.result_types import OperationResult, ResultStatus

    report = graph.handle_element_moved("E1")
    if report.status == ResultStatus.WARNING:
        for conn_id in report.failed_items:
            ...
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List

from loguru import logger


class ResultStatus(Enum):
    """Outcome of a multi-step core operation."""
    SUCCESS = auto()
    WARNING = auto()
    EMPTY = auto()
    ERROR = auto()


@dataclass
class OperationResult:
    """
    Report of a core operation.

    Attributes:
        status: Outcome category
        value: Payload (e.g. ids of applied connections)
        message: Human-readable summary
        details: Extra context (reason for EMPTY, exception info for ERROR)
        warnings: Non-fatal issues, one line each
        failed_items: Ids of items that were skipped
    """
    status: ResultStatus
    value: Any = None
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    failed_items: List[Any] = field(default_factory=list)

    @classmethod
    def success(cls, value: Any, message: str = "Operation completed") -> "OperationResult":
        return cls(status=ResultStatus.SUCCESS, value=value, message=message)

    @classmethod
    def warning(cls, value: Any, message: str, warnings: List[str] = None,
                failed_items: List[Any] = None) -> "OperationResult":
        """Partial success: ``value`` holds what was done, ``failed_items`` what was skipped."""
        return cls(
            status=ResultStatus.WARNING,
            value=value,
            message=message,
            warnings=warnings or [],
            failed_items=failed_items or [],
        )

    @classmethod
    def empty(cls, message: str = "Nothing to do", reason: str = None) -> "OperationResult":
        details = {"reason": reason} if reason else {}
        return cls(status=ResultStatus.EMPTY, value=None, message=message, details=details)

    @classmethod
    def error(cls, message: str, exception: Exception = None) -> "OperationResult":
        details = {}
        if exception is not None:
            details["exception_type"] = type(exception).__name__
            details["exception_message"] = str(exception)
        return cls(status=ResultStatus.ERROR, value=None, message=message, details=details)

    @property
    def is_success(self) -> bool:
        """SUCCESS, or WARNING that still produced a value."""
        return self.status == ResultStatus.SUCCESS or (
            self.status == ResultStatus.WARNING and self.value is not None
        )

    @property
    def is_empty(self) -> bool:
        return self.status == ResultStatus.EMPTY

    @property
    def is_error(self) -> bool:
        return self.status == ResultStatus.ERROR

    def log(self, context: str = "") -> "OperationResult":
        """Log with a level matching the status. Returns self for chaining."""
        prefix = f"[{context}] " if context else ""
        if self.status == ResultStatus.SUCCESS:
            logger.debug(f"{prefix}{self.message}")
        elif self.status == ResultStatus.WARNING:
            logger.warning(f"{prefix}{self.message}")
            for warn in self.warnings:
                logger.warning(f"{prefix}  - {warn}")
        elif self.status == ResultStatus.EMPTY:
            logger.debug(f"{prefix}{self.message} ({self.details.get('reason', '-')})")
        else:
            logger.error(f"{prefix}{self.message}")
        return self

    def to_report_dict(self) -> Dict[str, Any]:
        report = {"status": self.status.name, "message": self.message}
        if self.details:
            report["details"] = self.details
        if self.warnings:
            report["warnings"] = list(self.warnings)
        if self.failed_items:
            report["failed_count"] = len(self.failed_items)
        return report
