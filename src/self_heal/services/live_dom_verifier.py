"""
Live DOM verifier: the alternate repair path.

Used when no run report exists but a lightweight failure note does. Every
selector-looking string literal of the implicated source file is probed
against the live page; for each one that matches nothing, one replacement is
requested from the code-generation service, grounded on a prefix of the page
markup. Replacements are applied only when their confidence score clears the
configured threshold.
"""

import asyncio
import functools
import json
import logging
import re
import time
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from ..core.logging_config import get_healing_logger
from ..core.models import (
    HealingConfiguration,
    LiveCandidate,
    LiveFailureNote,
    LiveVerificationReport,
    VerifierState
)
from ..prompts import PromptComponents, build_live_repair_prompt
from .chrome_session_manager import ChromeSession, ChromeSessionManager
from .code_generation_client import CodeGenerationClient, CompletionError, RetryPolicy
from .llm_output_cleaner import LLMOutputCleaner
from .test_code_updater import PageObjectUpdater


logger = logging.getLogger(__name__)

STRING_LITERAL = re.compile(r'"([^"\n]*)"|\'([^\'\n]*)\'')
SELECTOR_MARKERS = ("#", ".", "//")
# aria-* attribute references and role/label based lookups
ARIA_SIGNAL = re.compile(r"\baria-[a-z]+|getbyrole\(|getbylabel\(")


def extract_candidates(source: str) -> List[str]:
    """Quoted literals that look like CSS/XPath selectors, first-seen order, no duplicates."""
    candidates: List[str] = []
    for match in STRING_LITERAL.finditer(source):
        literal = match.group(1) if match.group(1) is not None else match.group(2)
        if not any(marker in literal for marker in SELECTOR_MARKERS):
            continue
        # module specifiers and URLs are not locators
        if literal.startswith(("./", "../")) or "://" in literal:
            continue
        if literal not in candidates:
            candidates.append(literal)
    return candidates


def confidence_score(original: str, replacement: str) -> float:
    """Heuristic trust in a replacement locator."""
    lowered = replacement.lower()
    if "data-testid" in lowered or "getbytestid" in lowered:
        return 0.9
    if ARIA_SIGNAL.search(lowered):
        return 0.8
    if len(replacement) < len(original):
        return 0.6
    return 0.3


def load_failure_note(note_path: str) -> Optional[LiveFailureNote]:
    """Load the live failure note; None when it does not exist."""
    path = Path(note_path)
    if not path.exists():
        return None
    try:
        return LiveFailureNote.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, ValueError, ValidationError) as e:
        raise ValueError(f"Failure note {path} is unreadable: {e}") from e


class LiveDomVerifier:
    """Runs LOAD_CONTEXT -> OPEN_SESSION -> ... -> CLOSE_SESSION once."""

    def __init__(
        self,
        sessions: ChromeSessionManager,
        client: CodeGenerationClient,
        updater: PageObjectUpdater,
        config: HealingConfiguration,
        base_url: str
    ):
        self.sessions = sessions
        self.client = client
        self.updater = updater
        self.config = config
        self.base_url = base_url
        self.retry = RetryPolicy(
            max_attempts=config.max_attempts,
            backoff_seconds=config.backoff_seconds,
            backoff_factor=config.backoff_factor,
        )

    async def run(self, note_path: str) -> LiveVerificationReport:
        """Run the verification once.

        Raises:
            ValueError: If the failure note is malformed
            OSError: If the implicated source file cannot be read
        """
        report = LiveVerificationReport()

        report.states.append(VerifierState.LOAD_CONTEXT)
        note = load_failure_note(note_path)
        if note is None:
            logger.info("No healing context found")
            report.states.append(VerifierState.DONE)
            return report

        report.source_file = note.file
        original = self.updater.resolve(note.file).read_text(encoding="utf-8")

        url = note.url or self.base_url
        session: Optional[ChromeSession] = None
        markup = ""

        report.states.append(VerifierState.OPEN_SESSION)
        try:
            session = await self.sessions.open_session(url)
        except Exception as e:
            logger.error(f"Could not open a browser session on {url}: {e}; treating every candidate as broken")

        try:
            report.states.append(VerifierState.EXTRACT_CANDIDATES)
            report.candidates = [LiveCandidate(original=locator) for locator in extract_candidates(original)]
            logger.info(f"Found {len(report.candidates)} candidate locator(s) in {note.file}")

            report.states.append(VerifierState.PROBE_EACH)
            if session is not None:
                markup = await self._capture_markup(session)
                for candidate in report.candidates:
                    candidate.present = await self._probe(session, candidate.original)

            broken = report.broken
            if not broken:
                logger.info("No broken locators detected.")
            else:
                report.states.append(VerifierState.REQUEST_REPLACEMENTS)
                snapshot = markup[:self.config.dom_snapshot_chars]
                for candidate in broken:
                    await self._request_replacement(candidate, snapshot)
                    if candidate.replacement and candidate.confidence >= self.config.confidence_threshold:
                        report.applied.append(candidate)
                    else:
                        report.rejected.append(candidate)

                report.states.append(VerifierState.APPLY_ACCEPTED)
                self._apply(report, original)
        finally:
            report.states.append(VerifierState.CLOSE_SESSION)
            if session is not None:
                await self._close(session)

        report.states.append(VerifierState.DONE)
        return report

    async def _capture_markup(self, session: ChromeSession) -> str:
        try:
            return await self.sessions.page_markup(session)
        except Exception as e:
            logger.warning(f"Could not capture page markup: {e}")
            return ""

    async def _probe(self, session: ChromeSession, locator: str) -> bool:
        """True when the locator matches at least one element; errors count as absent."""
        try:
            count = await self.sessions.count_matches(session, locator)
        except Exception as e:
            logger.info(f"Probe of '{locator}' failed ({e}); treating it as broken")
            return False
        if count == 0:
            logger.info(f"Locator '{locator}' matches nothing on the page")
        return count > 0

    async def _request_replacement(self, candidate: LiveCandidate, snapshot: str) -> None:
        loop = asyncio.get_running_loop()
        try:
            completion = await loop.run_in_executor(
                None,
                functools.partial(
                    self.client.complete,
                    PromptComponents.LIVE_REPAIR_SYSTEM,
                    build_live_repair_prompt(candidate.original, snapshot),
                    self.retry,
                ),
            )
        except CompletionError as e:
            logger.warning(f"No replacement for '{candidate.original}': {e}")
            return

        replacement = LLMOutputCleaner.clean_locator_response(completion)
        if not replacement or replacement == candidate.original:
            logger.info(f"Replacement for '{candidate.original}' is empty or unchanged; skipping")
            return

        candidate.replacement = replacement
        candidate.confidence = confidence_score(candidate.original, replacement)
        logger.info(f"Replacement for '{candidate.original}': '{replacement}' "
                    f"(confidence {candidate.confidence:.1f})")

    def _apply(self, report: LiveVerificationReport, original: str) -> None:
        if not report.applied:
            logger.info("No replacement cleared the confidence threshold; source left unchanged")
            return

        healing_logger = get_healing_logger("live_verifier", file=report.source_file)
        replacements = [(candidate.original, candidate.replacement) for candidate in report.applied]
        healing_logger.log_operation_start("live_repair", replacements=replacements)
        start_time = time.time()

        result = self.updater.update_locators(report.source_file, replacements, expected_content=original)
        if not result.success:
            report.error_message = result.error_message
            healing_logger.log_operation_failure("live_repair", time.time() - start_time, result.error_message)
            return

        healing_logger.log_operation_success("live_repair", time.time() - start_time,
                                             replacements=result.updated_locators,
                                             backup_path=result.backup_path)

    async def _close(self, session: ChromeSession) -> None:
        try:
            await self.sessions.close_session(session)
        except Exception as e:
            logger.warning(f"Error while closing browser session: {e}")
