"""
Error Tracking and Reporting for index synchronization.

Single-document syncs and bulk reindex runs never let a per-document failure
escalate into a per-run failure. Instead, failures are recorded here and
summarized in the final report.

Key Features:
- Custom Exception Classes: one per failure family (configuration,
  connectivity, document fetching, record assembly, index operations).
- ErrorTracker: aggregates every error reported during one operation.
- Severity Levels: WARNING, ERROR, CRITICAL.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict, Any

class ErrorSeverity(Enum):
    """
    Defines the severity of an error.
    """
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

@dataclass
class SyncError:
    """
    A structured object representing a single error that occurred during a sync.
    """
    message: str
    source_id: Optional[str] = None
    severity: ErrorSeverity = ErrorSeverity.ERROR
    details: Dict[str, Any] = field(default_factory=dict)
    recovery_suggestion: Optional[str] = None

    def to_dict(self):
        return {
            "message": self.message,
            "source_id": self.source_id,
            "severity": self.severity.value,
            "details": self.details,
            "recovery_suggestion": self.recovery_suggestion
        }

# Custom Exception Classes
class SyncException(Exception):
    """Base class for all custom sync exceptions."""
    def __init__(self, message: str, source_id: Optional[str] = None, recovery_suggestion: Optional[str] = None):
        self.message = message
        self.source_id = source_id
        self.recovery_suggestion = recovery_suggestion
        super().__init__(self.message)

class ConfigurationError(SyncException):
    """Indicates an error in the sync configuration (bad file, missing index name)."""
    pass

class NotConnectedError(SyncException):
    """The search index is not configured or cannot be reached."""
    pass

class DocumentFetchError(SyncException):
    """Indicates a failure to read documents from the CMS."""
    pass

class AssemblyError(SyncException):
    """A document could not be turned into records."""
    pass

class IndexOperationError(SyncException):
    """A call against the remote search index failed."""
    pass


class ErrorTracker:
    """
    A centralized tracker for aggregating errors during a sync run.
    """
    def __init__(self):
        self.errors: List[SyncError] = []

    def report(self, message: str, source_id: Optional[str] = None, severity: ErrorSeverity = ErrorSeverity.ERROR, details: Optional[Dict[str, Any]] = None, recovery_suggestion: Optional[str] = None):
        """
        Report a new error.
        """
        error = SyncError(
            message=message,
            source_id=source_id,
            severity=severity,
            details=details or {},
            recovery_suggestion=recovery_suggestion
        )
        self.errors.append(error)

    def report_exception(self, exc: SyncException, severity: ErrorSeverity = ErrorSeverity.ERROR):
        """
        Report an error from a SyncException.
        """
        self.report(
            message=exc.message,
            source_id=exc.source_id,
            severity=severity,
            recovery_suggestion=exc.recovery_suggestion
        )

    def get_errors(self, min_severity: ErrorSeverity = ErrorSeverity.WARNING) -> List[SyncError]:
        """
        Get all errors at or above a certain severity level.
        """
        severity_map = {
            ErrorSeverity.WARNING: 1,
            ErrorSeverity.ERROR: 2,
            ErrorSeverity.CRITICAL: 3
        }
        min_level = severity_map.get(min_severity, 1)
        return [e for e in self.errors if severity_map.get(e.severity, 1) >= min_level]

    def has_critical_errors(self) -> bool:
        return any(e.severity == ErrorSeverity.CRITICAL for e in self.errors)

    def generate_report(self) -> Dict[str, Any]:
        """
        Generate a summary report of all errors.
        """
        critical = len(self.get_errors(ErrorSeverity.CRITICAL))
        errors_and_up = len(self.get_errors(ErrorSeverity.ERROR))
        return {
            "total_errors": len(self.errors),
            "critical_count": critical,
            "error_count": errors_and_up - critical,
            "warning_count": len(self.errors) - errors_and_up,
            "errors": [e.to_dict() for e in self.errors]
        }
