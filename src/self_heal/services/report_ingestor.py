"""
Report ingestor for the locator self-healing pipeline.

Reads a Cucumber JSON run report (feature -> scenario -> step), validates it
against the report schema and yields the failed steps in report order.
"""

import json
import logging
import re
from pathlib import Path
from typing import Iterator, Optional, Sequence

from pydantic import ValidationError

from ..core.models import (
    UNKNOWN_FILE,
    IngestMode,
    RunReport,
    SourceLocation,
    StepOutcome,
    StepStatus
)


logger = logging.getLogger(__name__)


class ReportValidationError(Exception):
    """Raised when a run report exists but is not a valid Cucumber JSON report."""
    pass


def parse_source_location(raw: Optional[str], source_extensions: Sequence[str] = ("ts", "js")) -> SourceLocation:
    """Parse a `<file>:<line>` step location; unknown when it does not match."""
    extensions = "|".join(re.escape(ext.lstrip(".")) for ext in source_extensions)
    match = re.match(rf"(.+\.(?:{extensions})):(\d+)", raw or "")
    if not match:
        return SourceLocation(file=UNKNOWN_FILE, line=0)
    return SourceLocation(file=match.group(1).replace("\\", "/"), line=int(match.group(2)))


class FailedStepTraversal:
    """Lazy, restartable traversal over the failed steps of a report.

    Each call to ``iter()`` starts again from the first feature.
    """

    def __init__(self, report: Optional[RunReport], mode: IngestMode = IngestMode.ALL,
                 source_extensions: Sequence[str] = ("ts", "js")):
        self.report = report
        self.mode = mode
        self.source_extensions = tuple(source_extensions)

    def __iter__(self) -> Iterator[StepOutcome]:
        if self.report is None:
            return
        for feature in self.report:
            for scenario in feature.elements:
                for step in scenario.steps:
                    status = StepStatus.from_raw(step.result.status)
                    if status is not StepStatus.FAILED:
                        continue
                    location = parse_source_location(
                        step.match.location if step.match else None,
                        self.source_extensions,
                    )
                    yield StepOutcome(
                        feature=feature.name,
                        scenario=scenario.name,
                        step=step.name,
                        status=status,
                        error=step.result.error_message or "",
                        location=location,
                    )
                    if self.mode is IngestMode.FIRST:
                        return


class ReportIngestor:
    """Loads run reports and exposes their failed steps."""

    def __init__(self, source_extensions: Sequence[str] = ("ts", "js")):
        self.source_extensions = tuple(source_extensions)

    def load(self, report_path: str) -> Optional[RunReport]:
        """Load and validate a report. Returns None when the file is absent.

        Raises:
            ReportValidationError: If the file is not JSON or does not match the schema
        """
        path = Path(report_path)
        if not path.exists():
            logger.info(f"Run report not found at {path}, nothing to do")
            return None

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ReportValidationError(f"Run report {path} is not valid JSON: {e}") from e
        except OSError as e:
            raise ReportValidationError(f"Run report {path} could not be read: {e}") from e

        try:
            report = RunReport.model_validate(raw)
        except ValidationError as e:
            raise ReportValidationError(f"Run report {path} does not match the report schema: {e}") from e

        logger.info(f"📊 Loaded run report {path} with {len(report)} feature(s)")
        return report

    def failed_steps(self, report_path: str, mode: IngestMode = IngestMode.ALL) -> FailedStepTraversal:
        """Failed steps of the report at ``report_path`` (empty when the report is absent)."""
        return FailedStepTraversal(self.load(report_path), mode, self.source_extensions)
