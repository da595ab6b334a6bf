"""
Selenium page driver for the SearchFunder member directory.

All markup knowledge (selectors, card layout) lives in this module; the
collection loop only sees `RawItem`s.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from config.settings import Settings, get_settings
from models.credentials import Credentials
from models.record import RawItem
from sources.registry import register
from utils.errors import AuthError, NavigationError


logger = logging.getLogger(__name__)

LOGIN_TIMEOUT_SECONDS = 30

# Shared card parser; `card` is one element matched by the item selector.
_CARD_FIELDS_JS = """
function text(el) { return el ? el.textContent.trim() : null; }
function href(el) { return el ? el.href : null; }
function cardFields(card, full) {
    var out = {
        name: text(card.querySelector('div > div > span[data-profilecard]')),
        occupation: text(card.querySelector('div > div:nth-child(3)')),
        linkedin_url: href(card.querySelector('div:nth-child(2) > a[href*="linkedin.com"]'))
    };
    if (!full) { return out; }
    out.location = text(card.querySelector('div > div:nth-child(4)'));
    var uniContainer = card.querySelector('div > div:nth-child(5)');
    out.university_names = uniContainer
        ? Array.from(uniContainer.querySelectorAll('div')).map(text).filter(Boolean)
        : [];
    out.website_url = href(card.querySelector(
        'div:nth-child(2) > a:not([href*="linkedin.com"]):not([href*="searchfunder.com"])'));
    return out;
}
"""

_PROBE_JS = _CARD_FIELDS_JS + """
var cards = Array.from(document.querySelectorAll(arguments[0]));
var start = arguments[1];
var result = [];
for (var i = start; i < cards.length; i++) {
    var f = cardFields(cards[i], false);
    f.index = i;
    result.push(f);
}
return result;
"""

_EXTRACT_JS = _CARD_FIELDS_JS + """
var card = document.querySelectorAll(arguments[0])[arguments[1]];
if (!card) { return null; }
return cardFields(card, true);
"""

_DISMISS_NOTIFICATION_JS = """
var button = document.querySelector('.notification-button')
    || Array.from(document.querySelectorAll('button')).find(function (el) {
        return el.textContent.includes('Allow') || el.textContent.includes('Block');
    });
if (button) { button.click(); return true; }
return false;
"""


class SearchFunderDriver:
    driver_name = "searchfunder"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        webdriver_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._factory = webdriver_factory or self._create_chrome
        self._browser = None

    def _create_chrome(self):
        options = Options()
        options.add_argument(f"user-agent={self.settings.user_agent}")
        options.add_argument("--start-maximized")
        options.add_argument("--disable-blink-features=AutomationControlled")
        options.add_experimental_option("excludeSwitches", ["enable-automation"])
        if self.settings.headless:
            options.add_argument("--headless=new")
        return webdriver.Chrome(options=options)

    @property
    def browser(self):
        # Lazy-init so registry lookups do not launch a browser
        if self._browser is None:
            self._browser = self._factory()
        return self._browser

    def navigate(self, url: str) -> None:
        try:
            self.browser.get(url)
        except WebDriverException as e:
            raise NavigationError(f"Could not open {url}: {e.msg or e}") from e

    def login(self, credentials: Credentials) -> None:
        if "login" not in (self.browser.current_url or ""):
            logger.info("Already logged in, proceeding...", extra={"step": "login", "status": "skipped"})
            return
        logger.info("Logging in...", extra={"step": "login"})
        try:
            self.browser.find_element(By.CSS_SELECTOR, 'input[type="email"]').send_keys(credentials.email)
            self.browser.find_element(By.CSS_SELECTOR, 'input[type="password"]').send_keys(credentials.password)
            self.browser.find_element(By.CSS_SELECTOR, 'button[type="submit"]').click()
            WebDriverWait(self.browser, LOGIN_TIMEOUT_SECONDS).until(
                lambda d: "login" not in (d.current_url or "")
            )
        except TimeoutException as e:
            raise AuthError("Login failed. Please check credentials.") from e
        except WebDriverException as e:
            raise AuthError(f"Login form could not be submitted: {e.msg or e}") from e
        logger.info("Login successful", extra={"step": "login", "status": "ok"})

    def wait_for_element(self, selector: str, timeout_ms: int) -> None:
        try:
            WebDriverWait(self.browser, timeout_ms / 1000.0).until(
                EC.presence_of_element_located((By.CSS_SELECTOR, selector))
            )
        except TimeoutException as e:
            raise NavigationError(f"Timed out after {timeout_ms} ms waiting for {selector}") from e

    def dismiss_notification(self) -> bool:
        return bool(self.browser.execute_script(_DISMISS_NOTIFICATION_JS))

    def query_item_count(self) -> int:
        count = self.browser.execute_script(
            "return document.querySelectorAll(arguments[0]).length;", self.settings.item_selector
        )
        return int(count or 0)

    def query_item_fingerprint_batch(self, start: int = 0) -> List[RawItem]:
        data: List[Dict[str, Any]] = self.browser.execute_script(
            _PROBE_JS, self.settings.item_selector, max(0, int(start))
        ) or []
        return [RawItem.model_validate(item) for item in data]

    def extract_item(self, index: int) -> Optional[RawItem]:
        data = self.browser.execute_script(_EXTRACT_JS, self.settings.item_selector, int(index))
        if not data:
            return None
        return RawItem.model_validate({**data, "index": index})

    def trigger_load_more(self) -> None:
        self.browser.execute_script("window.scrollTo(0, document.body.scrollHeight);")

    def current_height(self) -> int:
        return int(self.browser.execute_script("return document.body.scrollHeight;") or 0)

    def close(self) -> None:
        if self._browser is None:
            return
        try:
            self._browser.quit()
        except WebDriverException as e:
            logger.warning("Browser did not quit cleanly: %s", e, extra={"step": "close"})
        finally:
            self._browser = None


def _register():
    register(SearchFunderDriver.driver_name, SearchFunderDriver)


_register()
