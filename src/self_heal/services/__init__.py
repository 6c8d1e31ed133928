"""
Pipeline stages of the locator self-healing system.

Report-driven path: report_ingestor -> failure_classifier -> locator_extractor
-> context_builder -> repair_orchestrator. The live_dom_verifier is the
alternate path used when only a failure note exists.
"""

from .failure_classifier import classify
from .failure_detection_service import FailureDetectionService
from .context_builder import ContextBuilder
from .repair_orchestrator import RepairOrchestrator, load_manifest
from .live_dom_verifier import LiveDomVerifier

__all__ = [
    "classify",
    "FailureDetectionService",
    "ContextBuilder",
    "RepairOrchestrator",
    "load_manifest",
    "LiveDomVerifier"
]
