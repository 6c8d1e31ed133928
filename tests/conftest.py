"""
Pytest configuration and shared fixtures for the test suite.
"""

import json
import logging
import sys
from pathlib import Path

import pytest

# Add the package source to Python path for testing
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from self_heal.core.models import HealingConfiguration  # noqa: E402


LOGIN_PAGE = """import { Page, expect } from '@playwright/test';

export class LoginPage {
  constructor(private page: Page) {}

  async login(user: string, password: string) {
    await this.page.locator('#username').fill(user);
    await this.page.locator('#password').fill(password);
    await this.page.locator('#login-btn').click();
  }

  async verifyLoginFailure() {
    await expect(this.page.locator('.error-banner')).toBeVisible();
  }
}
"""

CART_PAGE = """import { Page } from '@playwright/test';

export class CartPage {
  constructor(private page: Page) {}

  async checkout() {
    await this.page.locator('#checkout').click();
  }
}
"""

LOGIN_BUTTON_ERROR = """TimeoutError: locator.click: Timeout 30000ms exceeded.
Call log:
  - waiting for locator('#login-btn')

    at LoginPage.login (/ci/work/repo/pages/LoginPage.ts:8:47)
    at World.<anonymous> (/ci/work/repo/steps/login.steps.ts:12:3)"""

ERROR_BANNER_ERROR = """Error: Timed out 5000ms waiting for expect(locator).toBeVisible()

Locator: locator('.error-banner')
Expected: visible
Call log:
  - waiting for locator('.error-banner')

    at LoginPage.verifyLoginFailure (/ci/work/repo/pages/LoginPage.ts:12:57)"""

CHECKOUT_ERROR = """TimeoutError: locator.click: Timeout 30000ms exceeded.
Call log:
  - waiting for locator('#checkout')

    at CartPage.checkout (/ci/work/repo/pages/CartPage.ts:7:47)"""

BROWSER_LAUNCH_ERROR = "browserType.launch: Executable doesn't exist at /ms-playwright/chromium-1091/chrome-linux/chrome"


def make_step(name, status="passed", error=None, location="steps/login.steps.ts:12"):
    """Build one Cucumber JSON step."""
    result = {"status": status, "duration": 1000}
    if error is not None:
        result["error_message"] = error
    return {
        "keyword": "When ",
        "name": name,
        "match": {"location": location},
        "result": result,
    }


def make_scenario(name, steps):
    return {"name": name, "keyword": "Scenario", "type": "scenario", "steps": steps}


def make_feature(name, scenarios):
    return {"name": name, "keyword": "Feature", "uri": f"features/{name.lower()}.feature", "elements": scenarios}


@pytest.fixture
def project_dir(tmp_path):
    """Create a temporary project with a pages/ directory of page objects."""
    project = tmp_path / "project"
    pages = project / "pages"
    pages.mkdir(parents=True)
    (pages / "LoginPage.ts").write_text(LOGIN_PAGE, encoding="utf-8")
    (pages / "CartPage.ts").write_text(CART_PAGE, encoding="utf-8")
    return project


@pytest.fixture
def artifacts_dir(tmp_path):
    """Artifacts directory (not created up front)."""
    return tmp_path / "artifacts"


@pytest.fixture
def write_report(tmp_path):
    """Write a Cucumber JSON report built from features and return its path."""
    def _write(features, name="cucumber-report.json"):
        path = tmp_path / name
        path.write_text(json.dumps(features), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def login_report(write_report):
    """Report with one failed login step, matching the LoginPage fixture."""
    return write_report([
        make_feature("Login", [
            make_scenario("Invalid login", [
                make_step("I open the login page"),
                make_step("I submit the form", "failed", LOGIN_BUTTON_ERROR),
                make_step("I see an error", "skipped"),
            ]),
        ]),
    ])


@pytest.fixture
def healing_config():
    """Create a test healing configuration."""
    return HealingConfiguration(backoff_seconds=0.0)


@pytest.fixture(autouse=True)
def setup_test_logging():
    """Set up logging for tests."""
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
