"""
Context builder for the locator self-healing pipeline.

Aggregates every healable failure of one run into a single repair request:
failures are grouped by page-object file, each file is read once, and two
artifacts are written, a human-readable report (heal-context.md) and a
machine-readable repair manifest (heal-data.json).
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..core.models import (
    ClassifiedFailure,
    FailureRecord,
    RepairManifest,
    RepairManifestEntry
)


logger = logging.getLogger(__name__)

CONTEXT_FILENAME = "heal-context.md"
MANIFEST_FILENAME = "heal-data.json"

FENCE_LANGUAGES = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".py": "python",
}

REPAIR_INSTRUCTIONS = """# REPAIR INSTRUCTIONS

You are fixing a Playwright + Cucumber (BDD) framework.

STRICT RULES:

1. ONLY update locators in the page object files listed above.
2. DO NOT modify:
   - .feature files
   - step definitions
   - hooks
   - method signatures, imports or control flow
   - assertions
   - business logic
3. DO NOT introduce:
   - waitForTimeout
   - hardcoded delays
   - increased timeout values
4. Preferred locator order:
   - getByRole()
   - getByLabel()
   - getByTestId()
   - locator() with CSS/XPath only as a fallback
5. If strict mode violation: make the locator more specific.
6. If timeout: improve locator accuracy, NOT the timeout value.

---

# Guardrails Checklist

- [ ] Only locators updated
- [ ] No hard waits
- [ ] No timeout increase
- [ ] No logic change
- [ ] CI passes

---

# Validation

Run:

npm test
"""


@dataclass
class HealContext:
    """Everything the context builder derived from one run."""
    records: List[FailureRecord] = field(default_factory=list)
    non_actionable: List[FailureRecord] = field(default_factory=list)
    manifest: Optional[RepairManifest] = None
    report_markdown: str = ""
    context_path: Optional[Path] = None
    manifest_path: Optional[Path] = None

    @property
    def is_empty(self) -> bool:
        return not self.records


class ContextBuilder:
    """Builds the repair manifest and the human-readable report for a run."""

    def __init__(self, project_root: str, output_dir: str,
                 run_id: str = "LOCAL", branch: str = "LOCAL"):
        self.project_root = Path(project_root)
        self.output_dir = Path(output_dir)
        self.run_id = run_id or "LOCAL"
        self.branch = branch or "LOCAL"

    def build(self, failures: Sequence[ClassifiedFailure],
              timestamp: Optional[datetime] = None) -> HealContext:
        """Aggregate failures, render both artifacts and write them.

        Nothing is written when there are no failures.
        """
        if not failures:
            logger.info("No healable failures detected, nothing to heal")
            return HealContext()

        timestamp = timestamp or datetime.now()
        snapshots: Dict[str, Optional[str]] = {}
        records: List[FailureRecord] = []
        non_actionable: List[FailureRecord] = []

        for failure in failures:
            path = failure.page_object_file
            if path and path not in snapshots:
                snapshots[path] = self._read_page_object(path)
            content = snapshots.get(path) if path else None

            outcome = failure.outcome
            record = FailureRecord(
                feature=outcome.feature,
                scenario=outcome.scenario,
                step=outcome.step,
                error=outcome.error or "",
                location=outcome.location,
                category=failure.classification.category,
                broken_locator=failure.broken_locator,
                page_object_file=path,
                page_object_content=content or "",
            )
            records.append(record)
            if content is None:
                logger.warning(f"Failure in step '{record.step}' has no readable page object file "
                               f"({path or 'unresolved'}), reporting it as non-actionable")
                non_actionable.append(record)

        manifest = self.build_manifest(records, non_actionable, timestamp)
        context = HealContext(
            records=records,
            non_actionable=non_actionable,
            manifest=manifest,
            report_markdown=self.render_report(records, non_actionable, timestamp),
        )
        self.write_artifacts(context)
        return context

    def build_manifest(self, records: Sequence[FailureRecord],
                       non_actionable: Sequence[FailureRecord],
                       timestamp: datetime) -> RepairManifest:
        """One manifest entry per distinct file, in first-seen order."""
        excluded = {id(record) for record in non_actionable}
        entries: Dict[str, RepairManifestEntry] = {}

        for record in records:
            if id(record) in excluded:
                continue
            entry = entries.get(record.page_object_file)
            if entry is None:
                entry = RepairManifestEntry(
                    page_object_file=record.page_object_file,
                    page_object_content=record.page_object_content,
                )
                entries[record.page_object_file] = entry
            entry.add(record.broken_locator, record.error)

        return RepairManifest(
            total_failures=len(records),
            files=list(entries.values()),
            failures=list(records),
            metadata=self._metadata(timestamp),
        )

    def render_report(self, records: Sequence[FailureRecord],
                      non_actionable: Sequence[FailureRecord],
                      timestamp: datetime) -> str:
        """Render the deterministic human-readable report."""
        excluded = {id(record) for record in non_actionable}
        lines = [
            "# SELF-HEAL REPORT",
            "",
            "## Metadata",
            f"- Branch: {self.branch}",
            f"- Run ID: {self.run_id}",
            f"- Timestamp: {timestamp.isoformat()}",
            f"- Healable failures: {len(records)}",
            f"- Non-actionable failures: {len(non_actionable)}",
            "",
            "---",
            "",
        ]

        for index, record in enumerate(records, 1):
            language = FENCE_LANGUAGES.get(Path(record.page_object_file).suffix, "")
            lines.extend([
                f"## Failure {index}: {record.category.value}",
                "",
                f"Feature: {record.feature}",
                f"Scenario: {record.scenario}",
                "",
                "Step:",
                record.step,
                "",
                "File:",
                record.page_object_file or "(not resolved)",
                "",
                "Step location:",
                f"{record.location.file}:{record.location.line}",
                "",
                "Classification:",
                record.category.value,
                "",
                "Broken locator:",
                record.broken_locator,
                "",
                "### Error",
                "",
                "```",
                record.error,
                "```",
                "",
            ])
            if id(record) in excluded:
                lines.extend([
                    "_No readable page object file for this failure; it is not part of the repair manifest._",
                    "",
                ])
            else:
                lines.extend([
                    "### Current file content",
                    "",
                    f"```{language}",
                    record.page_object_content.rstrip("\n"),
                    "```",
                    "",
                ])
            lines.extend(["---", ""])

        lines.append(REPAIR_INSTRUCTIONS)
        return "\n".join(lines).strip() + "\n"

    def write_artifacts(self, context: HealContext) -> None:
        """Write heal-context.md and heal-data.json to the output directory."""
        self.output_dir.mkdir(parents=True, exist_ok=True)

        context.context_path = self.output_dir / CONTEXT_FILENAME
        context.context_path.write_text(context.report_markdown, encoding="utf-8")

        context.manifest_path = self.output_dir / MANIFEST_FILENAME
        context.manifest_path.write_text(
            json.dumps(context.manifest.to_dict(), indent=2), encoding="utf-8"
        )

        logger.info(f"{CONTEXT_FILENAME} and {MANIFEST_FILENAME} generated in {self.output_dir} "
                    f"({len(context.manifest.files)} file(s), {context.manifest.total_failures} failure(s))")

    def _read_page_object(self, relative_path: str) -> Optional[str]:
        """Read a page object once; None when it cannot be read."""
        path = self.project_root / relative_path
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not read page object {path}: {e}")
            return None

    def _metadata(self, timestamp: datetime) -> Dict[str, str]:
        return {
            "branch": self.branch,
            "runId": self.run_id,
            "timestamp": timestamp.isoformat(),
        }
