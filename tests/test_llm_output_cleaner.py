"""Unit tests for LLMOutputCleaner."""

import pytest

from self_heal.services.llm_output_cleaner import LLMOutputCleaner


class TestCleanSourceResponse:

    def test_fence_with_language_tag(self):
        completion = "```typescript\nexport class LoginPage {}\n```"

        assert LLMOutputCleaner.clean_source_response(completion) == "export class LoginPage {}\n"

    def test_bare_fence_and_padding(self):
        completion = "\n\n```\nconst a = 1;\nconst b = 2;\n```\n\n"

        assert LLMOutputCleaner.clean_source_response(completion) == "const a = 1;\nconst b = 2;\n"

    def test_unfenced_text_ends_with_one_newline(self):
        assert LLMOutputCleaner.clean_source_response("const a = 1;\n\n\n") == "const a = 1;\n"

    @pytest.mark.parametrize("completion", ["", "   \n", "```ts\n```"])
    def test_empty_completion(self, completion):
        assert LLMOutputCleaner.clean_source_response(completion) == ""

    def test_prose_around_fenced_block_is_dropped(self):
        completion = "Here is the fixed file:\n```ts\nconst a = 1;\n```\nLet me know if you need anything else."

        assert LLMOutputCleaner.clean_source_response(completion) == "const a = 1;\n"

    def test_inner_fences_are_kept(self):
        completion = "```ts\nconst doc = `\n```md\nx\n```\n`;\n```"

        cleaned = LLMOutputCleaner.clean_source_response(completion)

        assert cleaned.startswith("const doc = `")
        assert "```md" in cleaned


class TestCleanLocatorResponse:

    @pytest.mark.parametrize("completion,expected", [
        ("  [data-testid=\"login\"]  ", "[data-testid=\"login\"]"),
        ("```\n#login-btn\n```", "#login-btn"),
        ("'#login-btn'", "#login-btn"),
        ("\"button[name='save']\"", "button[name='save']"),
        ("`.error-banner`", ".error-banner"),
        ("'#login-btn\"", "'#login-btn\""),
    ])
    def test_cleanup(self, completion, expected):
        assert LLMOutputCleaner.clean_locator_response(completion) == expected
