"""Browser-driven portal login and the session it yields."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Protocol

from playwright.sync_api import Browser, BrowserContext, Playwright, Route, sync_playwright
from playwright.sync_api import Error as PlaywrightError

from services.errors import AuthenticationError, FetchError

logger = logging.getLogger(__name__)

SIGN_IN_URL = "https://www.duke-energy.com/my-account/sign-in"
EMAIL_SELECTOR = "#Split-Sign-In-signInUsername_tealeaf-unmask"
PASSWORD_SELECTOR = "#Split-Sign-In-signInPassword"
SUBMIT_SELECTOR = "button[type=submit]"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:89.0) Gecko/20100101 Firefox/89.0"
)

NAVIGATION_TIMEOUT_MS = 60_000
EMAIL_TIMEOUT_MS = 30_000
PASSWORD_TIMEOUT_MS = 10_000


@dataclass(frozen=True)
class Credentials:
    email: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(email={self.email!r}, password='***')"


class Session(Protocol):
    """An authenticated portal context that can issue usage queries."""

    def request(
        self,
        url: str,
        method: str,
        body: str,
        headers: Mapping[str, str],
        timeout_ms: int,
    ) -> str:
        ...

    def close(self) -> None:
        ...


class BrowserSession:
    """Session backed by a logged-in Playwright browser context."""

    def __init__(self, playwright: Playwright, browser: Browser, context: BrowserContext) -> None:
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self._closed = False

    def request(
        self,
        url: str,
        method: str,
        body: str,
        headers: Mapping[str, str],
        timeout_ms: int,
    ) -> str:
        """Navigate to ``url`` with the outgoing request rewritten to ``method``/``body``.

        The portal only exposes the usage endpoint as a page, so the navigation
        request is intercepted and replayed with the query payload. Cookies from
        the login travel with it.
        """
        page = self._context.new_page()

        def rewrite(route: Route) -> None:
            merged = {**route.request.headers, **headers}
            route.continue_(method=method, post_data=body, headers=merged)

        try:
            page.route(url, rewrite)
            page.goto(url, timeout=timeout_ms)
            return page.content()
        except PlaywrightError as exc:
            raise FetchError(f"Usage request to {url} failed: {exc}") from exc
        finally:
            page.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.info("Closing browser")
        try:
            self._browser.close()
        except PlaywrightError:
            logger.warning("Browser did not close cleanly")
        finally:
            self._playwright.stop()


class SessionAuthenticator:
    """Signs in through the portal's login form."""

    def __init__(
        self,
        headless: bool = True,
        sign_in_url: str = SIGN_IN_URL,
        launcher: Callable[[], object] = sync_playwright,
    ) -> None:
        self.headless = headless
        self.sign_in_url = sign_in_url
        self._launcher = launcher

    def authenticate(self, credentials: Credentials) -> BrowserSession:
        logger.info("Initializing browser", extra={"stage": "authenticating"})
        playwright: Playwright = self._launcher().start()  # type: ignore[attr-defined]
        browser: Optional[Browser] = None
        try:
            browser = playwright.chromium.launch(
                headless=self.headless,
                args=["--no-sandbox", "--disable-setuid-sandbox"],
            )
            context = browser.new_context(
                user_agent=USER_AGENT,
                viewport={"width": 1920, "height": 1080},
            )
            page = context.new_page()

            page.goto(self.sign_in_url, timeout=NAVIGATION_TIMEOUT_MS)
            page.wait_for_selector(EMAIL_SELECTOR, timeout=EMAIL_TIMEOUT_MS)
            page.fill(EMAIL_SELECTOR, credentials.email)
            page.wait_for_selector(PASSWORD_SELECTOR, timeout=PASSWORD_TIMEOUT_MS)
            page.fill(PASSWORD_SELECTOR, credentials.password)
            with page.expect_navigation(timeout=NAVIGATION_TIMEOUT_MS):
                page.click(SUBMIT_SELECTOR)

            logger.info("Login completed", extra={"stage": "authenticating", "status": page.url})
            page.close()
        except PlaywrightError as exc:
            self._shutdown(playwright, browser)
            raise AuthenticationError(f"Portal login failed: {exc}") from exc
        except BaseException:
            self._shutdown(playwright, browser)
            raise

        return BrowserSession(playwright, browser, context)

    @staticmethod
    def _shutdown(playwright: Playwright, browser: Optional[Browser]) -> None:
        try:
            if browser is not None:
                browser.close()
        except PlaywrightError:
            logger.warning("Browser did not close cleanly after failed login")
        finally:
            playwright.stop()
