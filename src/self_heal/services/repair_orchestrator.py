"""
Repair Orchestrator for the locator self-healing pipeline.

For every entry of the repair manifest this service asks the code-generation
service for a corrected page object, sanitizes the completion and overwrites
the file. Files are processed independently and in manifest order; one file
failing never stops the others, but any failure fails the run.
"""

import asyncio
import functools
import json
import logging
import time
from concurrent.futures import Executor
from pathlib import Path
from typing import Optional

from ..core.logging_config import get_healing_logger
from ..core.models import (
    HealingConfiguration,
    HealSummary,
    RepairManifest,
    RepairManifestEntry,
    RepairOutcome
)
from ..prompts import PromptComponents, build_file_repair_prompt
from .code_generation_client import CodeGenerationClient, CompletionError, RetryPolicy
from .llm_output_cleaner import LLMOutputCleaner
from .test_code_updater import PageObjectUpdater, PatchConflictError, PatchOperation


logger = logging.getLogger(__name__)

SUMMARY_FILENAME = "heal-summary.json"


class ManifestError(Exception):
    """Raised when the repair manifest exists but cannot be used."""
    pass


def load_manifest(manifest_path: str) -> Optional[RepairManifest]:
    """Load heal-data.json; None when it does not exist.

    Raises:
        ManifestError: If the file is not a valid manifest
    """
    path = Path(manifest_path)
    if not path.exists():
        logger.info(f"No repair manifest at {path}. Skipping.")
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return RepairManifest.from_dict(data)
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        raise ManifestError(f"Repair manifest {path} is unreadable: {e}") from e


class RepairOrchestrator:
    """Drives one repair attempt per page-object file."""

    def __init__(
        self,
        client: CodeGenerationClient,
        updater: PageObjectUpdater,
        config: HealingConfiguration,
        output_dir: str,
        base_url: str = "",
        run_id: Optional[str] = None,
        executor: Optional[Executor] = None
    ):
        self.client = client
        self.updater = updater
        self.config = config
        self.output_dir = Path(output_dir)
        self.base_url = base_url
        self.run_id = run_id
        self.executor = executor
        self.retry = RetryPolicy(
            max_attempts=config.max_attempts,
            backoff_seconds=config.backoff_seconds,
            backoff_factor=config.backoff_factor,
        )

    async def heal(self, manifest: RepairManifest) -> HealSummary:
        """Repair every manifest entry and write heal-summary.json."""
        summary = HealSummary(total_failures=manifest.total_failures)

        for entry in manifest.files:
            outcome = await self.repair_entry(entry)
            summary.results.append(outcome)

        self.write_summary(summary)
        logger.info(f"Heal summary: {summary.files_healed}/{summary.files_processed} file(s) healed, "
                    f"{summary.files_failed} failed")
        return summary

    async def repair_entry(self, entry: RepairManifestEntry) -> RepairOutcome:
        """One service call and at most one overwrite for a single file."""
        healing_logger = get_healing_logger("orchestrator", self.run_id, entry.page_object_file)
        healing_logger.log_operation_start("file_repair", locators=entry.broken_locators)
        start_time = time.time()

        try:
            if not entry.page_object_content:
                raise CompletionError("Manifest entry has no page object content")
            if not entry.broken_locators:
                raise CompletionError("Manifest entry has no broken locators")

            user_prompt = build_file_repair_prompt(
                entry.page_object_file,
                entry.page_object_content,
                entry.broken_locators,
                entry.errors,
                self.base_url,
            )
            loop = asyncio.get_running_loop()
            completion = await loop.run_in_executor(
                self.executor,
                functools.partial(
                    self.client.complete,
                    PromptComponents.FILE_REPAIR_SYSTEM,
                    user_prompt,
                    self.retry,
                ),
            )

            fixed_code = LLMOutputCleaner.clean_source_response(completion)
            if not fixed_code:
                raise CompletionError("Completion was empty after removing code fences")

            self.updater.apply(PatchOperation(
                target_path=entry.page_object_file,
                new_content=fixed_code,
                expected_content=entry.page_object_content,
            ))

        except (CompletionError, PatchConflictError, OSError) as e:
            healing_logger.log_operation_failure("file_repair", time.time() - start_time, str(e),
                                                 error_code=type(e).__name__)
            return RepairOutcome(
                file=entry.page_object_file,
                locators=list(entry.broken_locators),
                success=False,
                error=str(e),
            )

        healing_logger.log_operation_success("file_repair", time.time() - start_time,
                                             locators=entry.broken_locators)
        logger.info(f"Successfully healed: {entry.page_object_file}")
        return RepairOutcome(
            file=entry.page_object_file,
            locators=list(entry.broken_locators),
            success=True,
        )

    def write_summary(self, summary: HealSummary) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        summary_path = self.output_dir / SUMMARY_FILENAME
        summary_path.write_text(json.dumps(summary.to_dict(), indent=2), encoding="utf-8")
        return summary_path
