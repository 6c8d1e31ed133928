"""Best-effort extraction of the broken locator and its page-object file from error text."""

import re
from typing import Optional, Sequence

from ..core.models import UNKNOWN_LOCATOR, SourceLocation


LOCATOR_CALL_PATTERN = re.compile(
    r"""(?:locator|getByRole|getByLabel|getByText|getByTestId)\(\s*(['"`])(.+?)\1""",
    re.IGNORECASE,
)


def normalize_path(path: str) -> str:
    """Forward slashes only."""
    return path.replace("\\", "/")


class LocatorExtractor:
    """Pattern matching over stack-trace-like strings and step locations."""

    def __init__(self, page_object_dir: str = "pages", source_extensions: Sequence[str] = ("ts", "js")):
        self.page_object_dir = page_object_dir.strip("/")
        extensions = "|".join(re.escape(ext.lstrip(".")) for ext in source_extensions)
        segment = re.escape(self.page_object_dir)

        # "at LoginPage.verifyLoginFailure (/ci/work/repo/pages/LoginPage.ts:20:5)"
        self._method_frame = re.compile(
            rf"at\s+(?:async\s+)?[\w$]+\.[\w$<>]+\s+\((?P<path>(?:[^()\s]*/)?{segment}/[^():\s]+\.(?:{extensions}))(?::\d+)*\)"
        )
        # any bare "<...>/pages/LoginPage.ts" mention
        self._bare_path = re.compile(
            rf"(?P<path>(?:[^\s()'\"]*/)?{segment}/[^():\s'\"]+\.(?:{extensions}))\b"
        )

    def extract_broken_locator(self, error_text: Optional[str]) -> str:
        """First quoted argument of a locator-construction or lookup call, else the sentinel."""
        match = LOCATOR_CALL_PATTERN.search(error_text or "")
        if match:
            return match.group(2)
        return UNKNOWN_LOCATOR

    def extract_implicated_file(self, error_text: Optional[str],
                                location: Optional[SourceLocation] = None) -> str:
        """Page-object file implicated by the stack trace, falling back to the step location.

        Returns a project-relative path starting at the page-object directory,
        or an empty string when nothing resolves.
        """
        text = normalize_path(error_text or "")

        match = self._method_frame.search(text) or self._bare_path.search(text)
        if match:
            return self._relative_to_page_dir(match.group("path"))

        if location is not None and location.is_known:
            bare = self._bare_path.search(normalize_path(location.file))
            if bare:
                return self._relative_to_page_dir(bare.group("path"))

        return ""

    def _relative_to_page_dir(self, path: str) -> str:
        marker = f"{self.page_object_dir}/"
        if path.startswith(marker):
            return path
        index = path.rfind(f"/{marker}")
        return path[index + 1:] if index >= 0 else path
