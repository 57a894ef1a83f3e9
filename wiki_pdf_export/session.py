"""
Browser session owning one Chromium process and one page.

Use it as an async context manager so the browser is closed exactly once on
every exit path:

    async with PageSession(executable, logger) as session:
        page = await session.load_content(html)
"""

from typing import Any, Optional

from playwright.async_api import async_playwright, Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from .errors import EngineLaunchError, EngineLaunchTimeoutError, PageLoadError, PageLoadTimeoutError
from .log import Logger, log_debug, log_warning

LAUNCH_TIMEOUT_MS = 120_000
LOAD_TIMEOUT_MS = 60_000

LAUNCH_ARGS = [
    '--no-sandbox',              # Required in containers
    '--disable-gpu',             # No GPU in headless mode
    '--disable-dev-shm-usage',   # Use /tmp instead of /dev/shm (prevents OOM crashes)
]


class PageSession:
    """One headless Chromium instance with a single page."""

    def __init__(self, executable_path: Optional[str], logger: Logger,
                 launch_timeout_ms: int = LAUNCH_TIMEOUT_MS, load_timeout_ms: int = LOAD_TIMEOUT_MS):
        self.executable_path = executable_path
        self.logger = logger
        self.launch_timeout_ms = launch_timeout_ms
        self.load_timeout_ms = load_timeout_ms
        self._playwright = None
        self.browser = None
        self.page = None

    async def __aenter__(self) -> "PageSession":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def is_open(self) -> bool:
        return self.browser is not None

    async def open(self) -> None:
        """Launch Chromium and open a blank page."""
        try:
            self._playwright = await async_playwright().start()
        except (PlaywrightError, OSError) as exc:
            raise EngineLaunchError(f"Failed to start Playwright: {exc}") from exc
        launch_kwargs = {
            "headless": True,
            "args": list(LAUNCH_ARGS),
            "timeout": self.launch_timeout_ms,
        }
        if self.executable_path:
            launch_kwargs["executable_path"] = self.executable_path
        try:
            self.browser = await self._playwright.chromium.launch(**launch_kwargs)
            self.page = await self.browser.new_page()
        except PlaywrightTimeoutError as exc:
            await self.close()
            raise EngineLaunchTimeoutError(
                f"Chromium did not start within {self.launch_timeout_ms // 1000}s"
            ) from exc
        except PlaywrightError as exc:
            await self.close()
            raise EngineLaunchError(f"Failed to launch Chromium: {exc}") from exc
        log_debug(self.logger, f"Browser launched (executable: {self.executable_path or 'bundled'})")

    async def load_content(self, html: str):
        """Set the page document from an in-memory HTML string."""
        try:
            await self.page.set_content(html, timeout=self.load_timeout_ms, wait_until="load")
        except PlaywrightTimeoutError as exc:
            raise PageLoadTimeoutError(
                f"HTML content did not finish loading within {self.load_timeout_ms // 1000}s"
            ) from exc
        except PlaywrightError as exc:
            raise PageLoadError(f"Failed to load HTML content: {exc}") from exc
        return self.page

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        """Evaluate a JavaScript expression or function in the page."""
        if arg is None:
            return await self.page.evaluate(expression)
        return await self.page.evaluate(expression, arg)

    async def close(self) -> None:
        """Close browser and cleanup resources. Safe to call more than once."""
        # Grab references and null them out first to prevent double-close
        page = self.page
        browser = self.browser
        pw = self._playwright
        self.page = None
        self.browser = None
        self._playwright = None

        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError as e:
                log_warning(self.logger, f"Error while closing browser: {e}")
        if pw is not None:
            try:
                await pw.stop()
            except PlaywrightError as e:
                log_warning(self.logger, f"Error while stopping Playwright: {e}")
        if page is not None or browser is not None:
            log_debug(self.logger, "Browser instance closed and cleaned up")
