"""
Tests for the repair orchestrator.

The code-generation client is mocked; page objects live in a temporary
project tree.
"""

import json
from unittest.mock import Mock

import pytest

from self_heal.core.models import RepairManifest, RepairManifestEntry
from self_heal.services.code_generation_client import CompletionError
from self_heal.services.repair_orchestrator import (
    SUMMARY_FILENAME,
    ManifestError,
    RepairOrchestrator,
    load_manifest
)
from self_heal.services.test_code_updater import PageObjectUpdater

from conftest import CART_PAGE, CHECKOUT_ERROR, LOGIN_BUTTON_ERROR, LOGIN_PAGE


FIXED_LOGIN_PAGE = LOGIN_PAGE.replace("locator('#login-btn')", "getByRole('button', { name: 'Sign in' })")


@pytest.fixture
def manifest():
    return RepairManifest(
        total_failures=2,
        files=[
            RepairManifestEntry("pages/LoginPage.ts", LOGIN_PAGE, ["#login-btn"], [LOGIN_BUTTON_ERROR]),
            RepairManifestEntry("pages/CartPage.ts", CART_PAGE, ["#checkout"], [CHECKOUT_ERROR]),
        ],
    )


@pytest.fixture
def client():
    client = Mock()
    client.complete.return_value = f"```typescript\n{FIXED_LOGIN_PAGE}```"
    return client


@pytest.fixture
def orchestrator(client, project_dir, artifacts_dir, healing_config):
    return RepairOrchestrator(
        client=client,
        updater=PageObjectUpdater(str(project_dir)),
        config=healing_config,
        output_dir=str(artifacts_dir),
        base_url="http://localhost:3000",
        run_id="42",
    )


class TestRepairOrchestrator:

    @pytest.mark.asyncio
    async def test_heals_every_file(self, orchestrator, client, manifest, project_dir, artifacts_dir):
        summary = await orchestrator.heal(manifest)

        assert summary.succeeded
        assert summary.files_processed == 2
        assert summary.files_healed == 2
        assert client.complete.call_count == 2
        assert (project_dir / "pages" / "LoginPage.ts").read_text(encoding="utf-8") == FIXED_LOGIN_PAGE
        assert (artifacts_dir / SUMMARY_FILENAME).exists()

    @pytest.mark.asyncio
    async def test_one_failed_file_does_not_stop_the_others(self, orchestrator, client, manifest,
                                                            project_dir, artifacts_dir):
        def complete(system_prompt, user_prompt, retry):
            if "pages/CartPage.ts" in user_prompt:
                raise CompletionError("No completion in code-generation service response")
            return FIXED_LOGIN_PAGE

        client.complete.side_effect = complete

        summary = await orchestrator.heal(manifest)

        assert not summary.succeeded
        assert summary.files_healed == 1
        assert summary.files_failed == 1
        assert (project_dir / "pages" / "LoginPage.ts").read_text(encoding="utf-8") == FIXED_LOGIN_PAGE
        assert (project_dir / "pages" / "CartPage.ts").read_text(encoding="utf-8") == CART_PAGE

        written = json.loads((artifacts_dir / SUMMARY_FILENAME).read_text(encoding="utf-8"))
        assert written["totalFailures"] == 2
        assert written["filesProcessed"] == 2
        assert written["filesHealed"] == 1
        assert written["filesFailed"] == 1
        assert written["results"][0] == {"file": "pages/LoginPage.ts", "locators": ["#login-btn"], "success": True}
        assert written["results"][1]["success"] is False
        assert "No completion" in written["results"][1]["error"]

    @pytest.mark.asyncio
    async def test_prompt_carries_file_and_locators(self, orchestrator, client, manifest):
        await orchestrator.repair_entry(manifest.files[0])

        system_prompt, user_prompt, retry = client.complete.call_args[0]
        assert "ONLY the complete updated file" in system_prompt
        assert "BROKEN LOCATOR: #login-btn" in user_prompt
        assert "CURRENT FILE (pages/LoginPage.ts)" in user_prompt
        assert LOGIN_PAGE in user_prompt
        assert "http://localhost:3000" in user_prompt
        assert retry.max_attempts == 1

    @pytest.mark.asyncio
    async def test_empty_completion_fails_the_file(self, orchestrator, client, manifest, project_dir):
        client.complete.return_value = "```typescript\n```"

        outcome = await orchestrator.repair_entry(manifest.files[0])

        assert not outcome.success
        assert "empty" in outcome.error
        assert (project_dir / "pages" / "LoginPage.ts").read_text(encoding="utf-8") == LOGIN_PAGE

    @pytest.mark.asyncio
    async def test_changed_file_is_not_overwritten(self, orchestrator, manifest, project_dir):
        login_page = project_dir / "pages" / "LoginPage.ts"
        login_page.write_text("// edited after the run\n", encoding="utf-8")

        outcome = await orchestrator.repair_entry(manifest.files[0])

        assert not outcome.success
        assert login_page.read_text(encoding="utf-8") == "// edited after the run\n"

    @pytest.mark.asyncio
    async def test_missing_file_fails_the_file(self, orchestrator, client):
        entry = RepairManifestEntry("pages/GonePage.ts", "export {};\n", ["#gone"], ["waiting for locator('#gone')"])

        outcome = await orchestrator.repair_entry(entry)

        assert not outcome.success
        assert "GonePage.ts" in outcome.error

    @pytest.mark.asyncio
    async def test_entry_without_content_is_not_sent(self, orchestrator, client):
        entry = RepairManifestEntry("pages/LoginPage.ts", "", ["#login-btn"], [LOGIN_BUTTON_ERROR])

        outcome = await orchestrator.repair_entry(entry)

        assert not outcome.success
        client.complete.assert_not_called()


class TestLoadManifest:

    def test_absent(self, tmp_path):
        assert load_manifest(str(tmp_path / "heal-data.json")) is None

    def test_valid(self, tmp_path, manifest):
        path = tmp_path / "heal-data.json"
        path.write_text(json.dumps(manifest.to_dict()), encoding="utf-8")

        loaded = load_manifest(str(path))

        assert loaded.total_failures == 2
        assert [entry.page_object_file for entry in loaded.files] == ["pages/LoginPage.ts", "pages/CartPage.ts"]
        assert loaded.files[0].page_object_content == LOGIN_PAGE

    @pytest.mark.parametrize("payload", ["{oops", '{"files": [{"brokenLocators": []}]}', "[1, 2]"])
    def test_invalid(self, tmp_path, payload):
        path = tmp_path / "heal-data.json"
        path.write_text(payload, encoding="utf-8")

        with pytest.raises(ManifestError):
            load_manifest(str(path))
