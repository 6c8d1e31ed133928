"""Data models for the locator self-healing pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Any
from enum import Enum


UNKNOWN_LOCATOR = "unknown"
UNKNOWN_FILE = "Unknown"


class FailureCategory(Enum):
    """Failure taxonomy, listed in evaluation priority order."""
    INFRASTRUCTURE = "INFRASTRUCTURE"
    STRICT_MODE = "STRICT_MODE"
    LOCATOR_NOT_FOUND = "LOCATOR_NOT_FOUND"
    ASSERTION_VISIBILITY = "ASSERTION_VISIBILITY"
    DOM_STATE = "DOM_STATE"
    STEP_TIMEOUT_POSSIBLE_LOCATOR = "STEP_TIMEOUT_POSSIBLE_LOCATOR"
    UNKNOWN = "UNKNOWN"


class IngestMode(Enum):
    """How many failed steps the report ingestor collects."""
    FIRST = "first"
    ALL = "all"


class StepStatus(Enum):
    """Execution status of a single step."""
    PASSED = "passed"
    FAILED = "failed"
    OTHER = "other"

    @classmethod
    def from_raw(cls, raw: Optional[str]) -> "StepStatus":
        value = (raw or "").lower()
        if value == "passed":
            return cls.PASSED
        if value == "failed":
            return cls.FAILED
        return cls.OTHER


class VerifierState(Enum):
    """States of the live-document verification run."""
    LOAD_CONTEXT = "load_context"
    OPEN_SESSION = "open_session"
    EXTRACT_CANDIDATES = "extract_candidates"
    PROBE_EACH = "probe_each"
    REQUEST_REPLACEMENTS = "request_replacements"
    APPLY_ACCEPTED = "apply_accepted"
    CLOSE_SESSION = "close_session"
    DONE = "done"


@dataclass(frozen=True)
class Classification:
    """Result of classifying an error message."""
    healable: bool
    category: FailureCategory


@dataclass(frozen=True)
class SourceLocation:
    """A `<path>:<line>` step location."""
    file: str = UNKNOWN_FILE
    line: int = 0

    @property
    def is_known(self) -> bool:
        return self.file != UNKNOWN_FILE


@dataclass(frozen=True)
class StepOutcome:
    """One step of a run report, with its enclosing feature and scenario."""
    feature: str
    scenario: str
    step: str
    status: StepStatus
    error: Optional[str] = None
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass(frozen=True)
class ClassifiedFailure:
    """A failed step that passed the healability gate, before file content is attached."""
    outcome: StepOutcome
    classification: Classification
    broken_locator: str
    page_object_file: str


@dataclass(frozen=True)
class FailureRecord:
    """A healable failure with everything needed to repair it."""
    feature: str
    scenario: str
    step: str
    error: str
    location: SourceLocation
    category: FailureCategory
    broken_locator: str
    page_object_file: str
    page_object_content: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Per-failure summary for the repair manifest."""
        return {
            "feature": self.feature,
            "scenario": self.scenario,
            "step": self.step,
            "pageObjectFile": self.page_object_file,
            "brokenLocator": self.broken_locator,
            "classification": self.category.value,
            "error": self.error,
        }


@dataclass
class RepairManifestEntry:
    """All broken locators of one page-object file, with its pre-run content."""
    page_object_file: str
    page_object_content: str
    broken_locators: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def add(self, locator: str, error: str) -> None:
        """Append a locator/error pair; duplicate locators are kept once.

        The unknown-locator sentinel is only deduplicated on an identical error,
        since the error text is all that identifies it.
        """
        if locator == UNKNOWN_LOCATOR:
            if (locator, error) in zip(self.broken_locators, self.errors):
                return
        elif locator in self.broken_locators:
            return
        self.broken_locators.append(locator)
        self.errors.append(error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pageObjectFile": self.page_object_file,
            "pageObjectContent": self.page_object_content,
            "brokenLocators": list(self.broken_locators),
            "errors": list(self.errors),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RepairManifestEntry':
        return cls(
            page_object_file=data["pageObjectFile"],
            page_object_content=data["pageObjectContent"],
            broken_locators=list(data.get("brokenLocators", [])),
            errors=list(data.get("errors", [])),
        )


@dataclass
class RepairManifest:
    """Machine-readable aggregation of a run's healable failures."""
    total_failures: int
    files: List[RepairManifestEntry] = field(default_factory=list)
    failures: List[FailureRecord] = field(default_factory=list)
    metadata: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalFailures": self.total_failures,
            "files": [entry.to_dict() for entry in self.files],
            "failures": [record.to_dict() for record in self.failures],
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RepairManifest':
        """Rebuild the actionable part of a manifest; per-failure summaries are report-only."""
        return cls(
            total_failures=int(data.get("totalFailures", 0)),
            files=[RepairManifestEntry.from_dict(entry) for entry in data.get("files", [])],
            metadata=dict(data.get("metadata", {})),
        )


@dataclass
class RepairOutcome:
    """Result of repairing one manifest entry."""
    file: str
    locators: List[str]
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "file": self.file,
            "locators": list(self.locators),
            "success": self.success,
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class HealSummary:
    """Aggregate outcome of one repair run."""
    total_failures: int
    results: List[RepairOutcome] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def files_processed(self) -> int:
        return len(self.results)

    @property
    def files_healed(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def files_failed(self) -> int:
        return sum(1 for result in self.results if not result.success)

    @property
    def succeeded(self) -> bool:
        return self.files_failed == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalFailures": self.total_failures,
            "filesProcessed": self.files_processed,
            "filesHealed": self.files_healed,
            "filesFailed": self.files_failed,
            "results": [result.to_dict() for result in self.results],
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class LiveCandidate:
    """A locator literal probed against the live document."""
    original: str
    present: bool = False
    replacement: Optional[str] = None
    confidence: float = 0.0

    @property
    def is_broken(self) -> bool:
        return not self.present


@dataclass
class LiveVerificationReport:
    """What the live-document path did in one run."""
    source_file: str = ""
    candidates: List[LiveCandidate] = field(default_factory=list)
    applied: List[LiveCandidate] = field(default_factory=list)
    rejected: List[LiveCandidate] = field(default_factory=list)
    states: List[VerifierState] = field(default_factory=list)
    error_message: Optional[str] = None

    @property
    def broken(self) -> List[LiveCandidate]:
        return [candidate for candidate in self.candidates if candidate.is_broken]


@dataclass
class HealingConfiguration:
    """Tuning settings for the self-healing pipeline."""
    ingest_mode: IngestMode = IngestMode.ALL
    page_object_dir: str = "pages"
    source_extensions: List[str] = field(default_factory=lambda: ["ts", "js"])

    # Live-document path
    confidence_threshold: float = 0.5
    dom_snapshot_chars: int = 12000

    # Code-generation retry policy; one attempt means no retry
    max_attempts: int = 1
    backoff_seconds: float = 2.0
    backoff_factor: float = 2.0

    # Chrome
    headless: bool = True
    page_load_timeout: int = 30  # seconds

    # Backups taken before a page object is overwritten
    backup_enabled: bool = False
    backup_dir: str = "artifacts/backups"

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to the nested YAML structure."""
        return {
            "ingest_mode": self.ingest_mode.value,
            "page_object_dir": self.page_object_dir,
            "source_extensions": list(self.source_extensions),
            "confidence_threshold": self.confidence_threshold,
            "dom_snapshot_chars": self.dom_snapshot_chars,
            "retry": {
                "max_attempts": self.max_attempts,
                "backoff_seconds": self.backoff_seconds,
                "backoff_factor": self.backoff_factor,
            },
            "chrome": {
                "headless": self.headless,
                "page_load_timeout": self.page_load_timeout,
            },
            "backup": {
                "enabled": self.backup_enabled,
                "dir": self.backup_dir,
            },
        }
