"""Core data models for the locator self-healing pipeline."""

from .healing_models import (
    UNKNOWN_FILE,
    UNKNOWN_LOCATOR,
    Classification,
    ClassifiedFailure,
    FailureCategory,
    FailureRecord,
    HealingConfiguration,
    HealSummary,
    IngestMode,
    LiveCandidate,
    LiveVerificationReport,
    RepairManifest,
    RepairManifestEntry,
    RepairOutcome,
    SourceLocation,
    StepOutcome,
    StepStatus,
    VerifierState
)
from .report_schema import LiveFailureNote, RunReport

__all__ = [
    "UNKNOWN_FILE",
    "UNKNOWN_LOCATOR",
    "Classification",
    "ClassifiedFailure",
    "FailureCategory",
    "FailureRecord",
    "HealingConfiguration",
    "HealSummary",
    "IngestMode",
    "LiveCandidate",
    "LiveVerificationReport",
    "RepairManifest",
    "RepairManifestEntry",
    "RepairOutcome",
    "SourceLocation",
    "StepOutcome",
    "StepStatus",
    "VerifierState",
    "LiveFailureNote",
    "RunReport"
]
