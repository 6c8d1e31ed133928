"""Chrome session manager for probing locators against a live document."""

import asyncio
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from selenium import webdriver
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from webdriver_manager.chrome import ChromeDriverManager

from ..core.models import HealingConfiguration


logger = logging.getLogger(__name__)


def to_selenium_locator(locator: str) -> Tuple[str, str]:
    """Map a selector literal to a Selenium (By, value) pair: XPath or CSS."""
    expression = locator.strip()
    if expression.startswith("xpath="):
        return By.XPATH, expression[len("xpath="):]
    if expression.startswith("//") or expression.startswith("(//"):
        return By.XPATH, expression
    if expression.startswith("css="):
        return By.CSS_SELECTOR, expression[len("css="):]
    return By.CSS_SELECTOR, expression


@dataclass
class ChromeSession:
    """Represents a Chrome browser session opened for one verification run."""
    session_id: str
    driver: webdriver.Chrome
    created_at: datetime
    current_url: Optional[str] = None
    is_active: bool = True

    def close(self):
        """Close the Chrome session; errors are logged, never raised."""
        try:
            if self.driver:
                self.driver.quit()
        except Exception as e:
            logger.warning(f"Chrome session {self.session_id} did not quit cleanly: {e}")
        finally:
            self.is_active = False


class ChromeSessionManager:
    """Opens scoped Chrome sessions and runs blocking driver calls off the event loop."""

    def __init__(self, config: HealingConfiguration):
        """One worker thread: driver calls for a session are serialized."""
        self.config = config
        self.executor = ThreadPoolExecutor(max_workers=1)
        self.chrome_options = self._create_chrome_options()

    def _create_chrome_options(self) -> Options:
        """Chrome flags for CI containers; headless unless configured otherwise."""
        options = Options()
        if self.config.headless:
            options.add_argument("--headless")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-gpu")
        options.add_argument("--disable-extensions")
        options.add_argument("--window-size=1920,1080")

        options.add_experimental_option("useAutomationExtension", False)
        options.add_experimental_option("excludeSwitches", ["enable-automation"])

        return options

    def _create_chrome_session(self) -> ChromeSession:
        """Start a driver (chromedriver resolved by webdriver-manager)."""
        service = Service(ChromeDriverManager().install())
        driver = webdriver.Chrome(service=service, options=self.chrome_options)
        driver.set_page_load_timeout(self.config.page_load_timeout)

        session = ChromeSession(
            session_id=str(uuid.uuid4()),
            driver=driver,
            created_at=datetime.now()
        )
        logger.info(f"🌐 Chrome session {session.session_id} started for live locator probing")
        return session

    async def _run(self, func, *args):
        return await asyncio.get_running_loop().run_in_executor(self.executor, func, *args)

    async def open_session(self, url: str) -> ChromeSession:
        """Start Chrome and load ``url``; the driver is quit if navigation fails."""
        session = await self._run(self._create_chrome_session)
        try:
            await self._run(session.driver.get, url)
        except Exception:
            await self._run(session.close)
            raise
        session.current_url = url
        logger.debug(f"Chrome session {session.session_id} loaded {url}")
        return session

    async def close_session(self, session: ChromeSession) -> None:
        await self._run(session.close)

    async def count_matches(self, session: ChromeSession, locator: str) -> int:
        """Number of elements the locator matches on the current document.

        Driver errors (invalid selector, lost session) propagate to the caller.
        """
        by, value = to_selenium_locator(locator)
        elements = await self._run(session.driver.find_elements, by, value)
        return len(elements)

    async def page_markup(self, session: ChromeSession) -> str:
        """Serialized markup of the current document."""
        return await self._run(lambda: session.driver.page_source or "")

    def shutdown(self) -> None:
        self.executor.shutdown(wait=True)
