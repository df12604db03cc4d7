"""Grant Analyzer — Session Authenticator.

Produces the session Credential used by every catalog request. The
catalog's login form is staged in two steps (identifier, then
passphrase), so the login is driven through a headless browser with
Playwright and each DOM transition is awaited explicitly.

The browser is owned by a single authenticate() call and is always
closed before that call returns.
"""

from __future__ import annotations

from typing import Optional, Protocol

from playwright.async_api import Browser
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from grant_analyzer.config import AuthConfig
from grant_analyzer.errors import AuthenticationError
from grant_analyzer.models import Credential
from grant_analyzer.utils.logger import get_logger

logger = get_logger(__name__)


class Authenticator(Protocol):
    """Anything that can produce a session Credential.

    authenticate() raises AuthenticationError if no usable session could
    be obtained.
    """

    async def authenticate(self) -> Credential:
        ...


class BrowserAuthenticator:
    """Logs in through a headless Chromium browser.

    Attributes:
        config: Login URL, secrets, selectors and timeouts.
    """

    def __init__(self, config: AuthConfig) -> None:
        """Initialize the authenticator.

        Args:
            config: AuthConfig from the app configuration.
        """
        self.config = config

    async def authenticate(self) -> Credential:
        """Run the two-step login and capture the session cookies.

        Steps:
          1. Open the login page and wait for the network to settle.
          2. Fill the identifier and submit.
          3. Wait for the password field to become visible, fill, submit.
          4. Wait for the post-login navigation to settle.
          5. Read the browser context's cookie jar.

        Returns:
            The session Credential.

        Raises:
            AuthenticationError: If the browser cannot start, a form field
                is missing, the login is rejected, navigation times out, or
                no cookies were set.
        """
        cfg = self.config
        timeout_ms = cfg.timeout_seconds * 1000
        logger.info("Authenticating against %s", cfg.login_url)

        browser: Optional[Browser] = None
        async with async_playwright() as playwright:
            try:
                browser = await playwright.chromium.launch(headless=cfg.headless)
                context = await browser.new_context()
                page = await context.new_page()
                page.set_default_timeout(timeout_ms)

                await page.goto(cfg.login_url, wait_until="networkidle")

                # ── Step 1: identifier ──────────────────────
                try:
                    username_field = await page.wait_for_selector(
                        cfg.username_selector, state="visible",
                    )
                except PlaywrightTimeoutError as e:
                    raise AuthenticationError("Login identifier field not found") from e
                await username_field.fill(cfg.username)
                await page.click(cfg.submit_selector)

                # ── Step 2: passphrase ──────────────────────
                try:
                    password_field = await page.wait_for_selector(
                        cfg.password_selector, state="visible",
                    )
                except PlaywrightTimeoutError as e:
                    raise AuthenticationError(
                        "Password field did not appear (identifier rejected?)"
                    ) from e
                await password_field.fill(cfg.password)

                try:
                    async with page.expect_navigation(wait_until="networkidle"):
                        await page.click(cfg.submit_selector)
                except PlaywrightTimeoutError as e:
                    raise AuthenticationError(
                        "Post-login navigation did not complete (credentials rejected?)"
                    ) from e

                if await page.is_visible(cfg.error_selector) or await page.is_visible(
                    cfg.password_selector
                ):
                    raise AuthenticationError("Credentials rejected by the login form")

                credential = Credential.from_cookie_jar(await context.cookies())

            except PlaywrightError as e:
                raise AuthenticationError(f"Browser login failed: {e}") from e
            finally:
                if browser is not None:
                    await browser.close()
                    logger.debug("Login browser closed")

        if not len(credential):
            raise AuthenticationError("No session cookies present after login")

        logger.info(
            "Authenticated: %d session cookies (%s)",
            len(credential), ", ".join(credential.names),
        )
        return credential
