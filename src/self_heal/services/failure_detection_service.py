"""
Failure Detection Service for the locator self-healing pipeline.

This service walks the failed steps of a Cucumber run report, classifies each
error and extracts the broken locator and page-object file of every failure
that can be automatically healed.
"""

import logging
from collections import Counter
from typing import Any, Dict, Iterable, List

from ..core.models import (
    UNKNOWN_LOCATOR,
    ClassifiedFailure,
    HealingConfiguration,
    StepOutcome
)
from .failure_classifier import classify
from .locator_extractor import LocatorExtractor
from .report_ingestor import ReportIngestor


logger = logging.getLogger(__name__)


class FailureDetectionService:
    """Service for detecting and analyzing step failures that can be healed."""

    def __init__(self, config: HealingConfiguration):
        """Initialize the failure detection service."""
        self.config = config
        self.ingestor = ReportIngestor(config.source_extensions)
        self.extractor = LocatorExtractor(config.page_object_dir, config.source_extensions)

    def analyze_report(self, report_path: str) -> List[ClassifiedFailure]:
        """
        Analyze a Cucumber JSON report and extract healable failures.

        Args:
            report_path: Path to the cucumber-report.json file

        Returns:
            List of ClassifiedFailure objects, in report order

        Raises:
            ReportValidationError: If the report exists but is malformed
        """
        logger.info(f"🔍 FAILURE DETECTION: Starting analysis of {report_path} "
                    f"({self.config.ingest_mode.value}-failure mode)")
        steps = self.ingestor.failed_steps(report_path, self.config.ingest_mode)
        failures = self.analyze_steps(steps)

        logger.info(f"🎯 FAILURE DETECTION: Analysis complete. Found {len(failures)} healable failure(s)")
        for i, failure in enumerate(failures):
            logger.info(f"   {i+1}. {failure.broken_locator} ({failure.classification.category.value}) "
                        f"in {failure.page_object_file or '<unresolved file>'}")
        return failures

    def analyze_steps(self, steps: Iterable[StepOutcome]) -> List[ClassifiedFailure]:
        """Classify failed steps and keep the healable ones."""
        failures = []
        for outcome in steps:
            classification = classify(outcome.error)
            if not classification.healable:
                logger.info(f"⏭️  FAILURE DETECTION: '{outcome.scenario}' / '{outcome.step}' classified as "
                            f"{classification.category.value}. Skipping healing.")
                continue

            locator = self.extractor.extract_broken_locator(outcome.error)
            page_object_file = self.extractor.extract_implicated_file(outcome.error, outcome.location)

            if locator == UNKNOWN_LOCATOR:
                logger.warning(f"⚠️  FAILURE DETECTION: No locator found in error of step '{outcome.step}'")
            if not page_object_file:
                logger.warning(f"⚠️  FAILURE DETECTION: No page object file resolved for step '{outcome.step}'")

            logger.info(f"✅ FAILURE DETECTION: '{outcome.scenario}' / '{outcome.step}' classified as "
                        f"{classification.category.value}")
            failures.append(ClassifiedFailure(
                outcome=outcome,
                classification=classification,
                broken_locator=locator,
                page_object_file=page_object_file,
            ))
        return failures

    def get_failure_statistics(self, failures: List[ClassifiedFailure]) -> Dict[str, Any]:
        """
        Generate statistics about detected failures.

        Args:
            failures: List of detected failures

        Returns:
            Dictionary containing failure statistics
        """
        categories = Counter(f.classification.category.value for f in failures)
        locators = Counter(f.broken_locator for f in failures)
        files = Counter(f.page_object_file for f in failures if f.page_object_file)

        return {
            "total_failures": len(failures),
            "actionable_failures": sum(1 for f in failures if f.page_object_file),
            "failure_types": dict(categories),
            "most_common_locators": dict(locators.most_common(10)),
            "most_common_files": dict(files.most_common(10)),
        }
