"""
Prompt Components Module for the code-generation service.

Reusable prompt building blocks shared by the report-driven repair path and
the live-document path. The system prompts carry the repair constraints; the
``build_*`` helpers assemble the task-level user prompts.
"""

from typing import Sequence


class PromptComponents:
    """
    Prompt building blocks.

    Components are organized into categories:
    - SHARED: Rules used by both repair paths
    - FILE REPAIR: Full page-object rewrite from the repair manifest
    - LIVE REPAIR: Single-locator replacement grounded on live markup
    """

    # ═══════════════════════════════════════════════════════════════════════════
    # SHARED COMPONENTS
    # ═══════════════════════════════════════════════════════════════════════════

    LOCATOR_PREFERENCE_RULES = """Preferred locator strategy, in order:
- getByRole()
- getByLabel()
- getByTestId()
- locator() with a CSS/XPath selector only as a last resort"""

    # ═══════════════════════════════════════════════════════════════════════════
    # FILE REPAIR
    # ═══════════════════════════════════════════════════════════════════════════

    FILE_REPAIR_SYSTEM = f"""You are an expert Playwright test automation engineer.
Your job is to fix broken locators in Page Object files.

STRICT RULES:
1. Fix ONLY the broken locators listed by the user - do not change anything else.
2. DO NOT modify method signatures, imports, control flow, assertions, class structure or business logic.
3. DO NOT introduce waitForTimeout, hard waits or hardcoded delays.
4. DO NOT increase any timeout values.
5. If a failure is a strict mode violation, make the locator more specific.
6. Return ONLY the complete updated file content.
7. Do NOT include markdown code fences, explanations, or comments about changes.

{LOCATOR_PREFERENCE_RULES}"""

    # ═══════════════════════════════════════════════════════════════════════════
    # LIVE REPAIR
    # ═══════════════════════════════════════════════════════════════════════════

    LIVE_REPAIR_SYSTEM = """You are an expert Playwright test automation engineer.
Your job is to replace one broken locator with a working one, using the page markup you are given.

STRICT RULES:
1. Return ONLY the replacement locator expression, nothing else.
2. Do NOT include markdown code fences, quotes or explanations.
3. Prefer getByRole, getByText, data-testid and aria-label/role attributes.
4. Avoid brittle CSS chains and positional selectors."""


def build_file_repair_prompt(page_object_file: str, page_object_content: str,
                             broken_locators: Sequence[str], errors: Sequence[str],
                             base_url: str = "") -> str:
    """Task payload: the file's current content and its broken-locator/error pairs."""
    pairs = []
    for index, locator in enumerate(broken_locators, 1):
        error = errors[index - 1] if index - 1 < len(errors) else ""
        pairs.append(f"{index}. BROKEN LOCATOR: {locator}\n   ERROR:\n{_indent(error, '      ')}")

    site = f"\nThe application under test is served at {base_url}." if base_url else ""

    return f"""The following Page Object has {len(broken_locators)} broken locator(s) causing test failures.

{chr(10).join(pairs)}

CURRENT FILE ({page_object_file}):
```
{page_object_content}
```

Fix every broken locator listed above and return the complete updated file.{site}
Return ONLY raw source code, no markdown fences or explanations."""


def build_live_repair_prompt(broken_locator: str, dom_snapshot: str) -> str:
    """Task payload: the broken locator and a bounded prefix of the live markup."""
    return f"""Broken locator:
{broken_locator}

Relevant DOM:
{dom_snapshot}

Prefer getByRole, getByText, data-testid, aria-label, role.
Avoid brittle CSS chains.
Return only the locator."""


def _indent(text: str, prefix: str) -> str:
    return "\n".join(prefix + line for line in (text or "").splitlines()) or prefix
