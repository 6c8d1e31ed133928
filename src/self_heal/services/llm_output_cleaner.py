"""
LLM Output Cleaner - turns code-generation completions into raw source text.

Completions frequently arrive wrapped in markdown code fences (with or
without a language tag) and padded with blank lines. Page objects are written
back verbatim, so the fences have to go and the file must end with exactly
one newline.
"""

import re
import logging

logger = logging.getLogger(__name__)


class LLMOutputCleaner:
    """Static helpers for sanitizing completion text."""

    OPENING_FENCE_LINE = re.compile(r"^```[\w+#.-]*[ \t]*$", re.MULTILINE)
    CLOSING_FENCE_LINE = re.compile(r"^```[ \t]*$", re.MULTILINE)
    SURROUNDING_QUOTES = ('"', "'", '`')

    @staticmethod
    def strip_code_fences(text: str) -> str:
        """Body of the fenced block, from the first opening fence to the last closing fence.

        Prose before or after the block is dropped. Text without an opening
        fence is returned stripped but otherwise unchanged.
        """
        cleaned = text.strip()
        opening = LLMOutputCleaner.OPENING_FENCE_LINE.search(cleaned)
        if opening is None:
            return cleaned

        if opening.start() > 0:
            logger.debug("🧹 Dropped prose before the code fence of a completion")
        body = cleaned[opening.end():]
        closings = list(LLMOutputCleaner.CLOSING_FENCE_LINE.finditer(body))
        if closings:
            body = body[:closings[-1].start()]
        return body.strip()

    @staticmethod
    def clean_source_response(text: str) -> str:
        """Sanitize a full-file completion; the result ends with exactly one newline.

        Returns an empty string when nothing but fences and whitespace came back.
        """
        cleaned = LLMOutputCleaner.strip_code_fences(text)
        if not cleaned:
            return ""
        return cleaned + "\n"

    @staticmethod
    def clean_locator_response(text: str) -> str:
        """Sanitize a single-locator completion (fences, whitespace and one pair of outer quotes)."""
        cleaned = LLMOutputCleaner.strip_code_fences(text)
        if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in LLMOutputCleaner.SURROUNDING_QUOTES:
            cleaned = cleaned[1:-1].strip()
        return cleaned
