"""
Failure classifier for the locator self-healing pipeline.

Maps a free-text error message to a category of a fixed taxonomy and decides
whether the failure is eligible for automated locator repair. Infrastructure
and unrecognized failures are never healable.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from ..core.models import Classification, FailureCategory


@dataclass(frozen=True)
class ClassificationRule:
    """One row of the classification table: any trigger matches the category."""
    category: FailureCategory
    triggers: Tuple[str, ...]
    healable: bool

    def matches(self, lowered_error: str) -> bool:
        return any(trigger in lowered_error for trigger in self.triggers)


# Evaluated top to bottom, first match wins. Triggers are lower-case.
CLASSIFICATION_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule(
        FailureCategory.INFRASTRUCTURE,
        (
            "browsertype.launch",
            "executable doesn't exist",
            "net::err",
            "navigation failed",
            "process completed with exit code",
        ),
        healable=False,
    ),
    ClassificationRule(
        FailureCategory.STRICT_MODE,
        ("strict mode violation",),
        healable=True,
    ),
    ClassificationRule(
        FailureCategory.LOCATOR_NOT_FOUND,
        (
            "waiting for locator",
            "locator(",
            "getbyrole",
            "getbytext",
            "getbylabel",
            "getbytestid",
        ),
        healable=True,
    ),
    ClassificationRule(
        FailureCategory.ASSERTION_VISIBILITY,
        (
            "tobevisible",
            "tohavetext",
            "tohavevalue",
            "not to be visible",
        ),
        healable=True,
    ),
    ClassificationRule(
        FailureCategory.DOM_STATE,
        ("element is not attached", "element is not visible"),
        healable=True,
    ),
    ClassificationRule(
        FailureCategory.STEP_TIMEOUT_POSSIBLE_LOCATOR,
        ("function timed out",),
        healable=True,
    ),
)

UNKNOWN = Classification(healable=False, category=FailureCategory.UNKNOWN)


def classify(error_text: Optional[str],
             rules: Sequence[ClassificationRule] = CLASSIFICATION_RULES) -> Classification:
    """Classify an error message. Total and side-effect free."""
    lowered = (error_text or "").lower()
    for rule in rules:
        if rule.matches(lowered):
            return Classification(healable=rule.healable, category=rule.category)
    return UNKNOWN
