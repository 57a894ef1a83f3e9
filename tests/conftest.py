import re
from pathlib import Path

import pytest
from PIL import Image
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from wiki_pdf_export import session as session_module
from wiki_pdf_export.config import ConversionRequest
from wiki_pdf_export.rasterizer import EMBED_IMAGES_JS, INITIALIZE_JS, RUNTIME_READY_JS

MERMAID_PAGE = """<html><head><title>Wiki</title></head><body>
<h1>Architecture</h1>
<div class="mermaid">graph TD; A-->B;</div>
<p>Some text</p>
<div class="mermaid">graph TD; A-->B;</div>
</body></html>"""

PLAIN_PAGE = "<html><body><h1>Hello</h1><p>No diagrams here.</p></body></html>"

FAKE_PDF = b"%PDF-1.4\n% fake pdf\n%%EOF\n"


class RecordingLogger:
    def __init__(self):
        self.messages = []

    def log(self, message):
        self.messages.append(message)


class FakeElement:
    def __init__(self, page, index):
        self.page = page
        self.index = index

    async def screenshot(self, path, type="png"):
        if self.page.screenshot_error:
            raise PlaywrightError("Element is not attached to the DOM")
        Image.new("RGB", (120 + self.index * 10, 60), "white").save(path, "PNG")
        return Path(path).read_bytes()


class FakePage:
    """In-memory stand-in for a Playwright page."""

    def __init__(self, mermaid_available=True, runtime_ready=True, load_hangs=False, pdf_error=False,
                 screenshot_error=False, crash_on=()):
        self.mermaid_available = mermaid_available
        self.runtime_ready = runtime_ready
        self.crash_on = crash_on
        self.load_hangs = load_hangs
        self.pdf_error = pdf_error
        self.screenshot_error = screenshot_error
        self.html = None
        self.content_kwargs = {}
        self.evaluated = []
        self.waited_functions = []
        self.timeouts = []
        self.pdf_kwargs = None
        self.embedded = None

    def _maybe_crash(self, name):
        if name in self.crash_on:
            raise PlaywrightError("Target page, context or browser has been closed")

    @property
    def diagram_count(self):
        return len(re.findall(r'class="mermaid"', self.html or ""))

    async def set_content(self, html, timeout=None, wait_until=None):
        self.content_kwargs = {"timeout": timeout, "wait_until": wait_until}
        self._maybe_crash("set_content")
        if self.load_hangs:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")
        self.html = html

    async def evaluate(self, expression, arg=None):
        self.evaluated.append((expression, arg))
        self._maybe_crash(expression)
        if expression == RUNTIME_READY_JS:
            return self.mermaid_available and self.runtime_ready
        if expression == INITIALIZE_JS and not self.mermaid_available:
            raise PlaywrightError("ReferenceError: mermaid is not defined")
        if expression == EMBED_IMAGES_JS:
            self.embedded = arg
            return min(len(arg), self.diagram_count)
        return None

    async def wait_for_function(self, expression, timeout=None, polling=None):
        self.waited_functions.append((expression, timeout, polling))
        self._maybe_crash("wait_for_function")
        if expression == RUNTIME_READY_JS and not self.mermaid_available:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")
        return True

    async def wait_for_timeout(self, timeout):
        self.timeouts.append(timeout)
        self._maybe_crash("wait_for_timeout")

    async def query_selector_all(self, selector):
        assert selector == ".mermaid"
        self._maybe_crash("query_selector_all")
        return [FakeElement(self, i) for i in range(self.diagram_count)]

    async def pdf(self, **kwargs):
        self.pdf_kwargs = kwargs
        if self.pdf_error:
            raise PlaywrightError("Printing failed")
        return FAKE_PDF


class FakeSession:
    def __init__(self, factory, executable_path, logger):
        self.factory = factory
        self.executable_path = executable_path
        self.logger = logger
        self.page = factory.page
        self.closed = 0

    async def __aenter__(self):
        if self.factory.launch_error is not None:
            raise self.factory.launch_error
        self.factory.opened += 1
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed += 1
        self.factory.closed += 1

    async def load_content(self, html):
        await self.page.set_content(html, timeout=60_000, wait_until="load")
        return self.page


class FakeSessionFactory:
    """Callable used in place of PageSession; counts opens and closes."""

    def __init__(self, page=None, launch_error=None):
        self.page = page or FakePage()
        self.launch_error = launch_error
        self.opened = 0
        self.closed = 0
        self.sessions = []

    def __call__(self, executable_path, logger):
        session = FakeSession(self, executable_path, logger)
        self.sessions.append(session)
        return session


class FakeBrowser:
    def __init__(self, page):
        self.page = page
        self.closed = 0

    async def new_page(self):
        return self.page

    async def close(self):
        self.closed += 1


class FakeChromium:
    def __init__(self, browser, launch_error=None):
        self.browser = browser
        self.launch_error = launch_error
        self.launch_kwargs = None

    async def launch(self, **kwargs):
        self.launch_kwargs = kwargs
        if self.launch_error is not None:
            raise self.launch_error
        return self.browser


class FakePlaywright:
    def __init__(self, chromium):
        self.chromium = chromium
        self.stopped = 0

    async def stop(self):
        self.stopped += 1


class FakeContextManager:
    """What ``async_playwright()`` returns; ``start`` hands back the driver."""

    def __init__(self, playwright, start_error=None):
        self.playwright = playwright
        self.start_error = start_error

    async def start(self):
        if self.start_error is not None:
            raise self.start_error
        return self.playwright


def fake_resolver(explicit_path=None, cache_dir=None, logger=None):
    return explicit_path or "/opt/fake/chrome"


@pytest.fixture
def logger():
    return RecordingLogger()


@pytest.fixture
def mermaid_html(tmp_path):
    path = tmp_path / "page.html"
    path.write_text(MERMAID_PAGE, encoding="utf-8")
    return path


@pytest.fixture
def plain_html(tmp_path):
    path = tmp_path / "plain.html"
    path.write_text(PLAIN_PAGE, encoding="utf-8")
    return path


@pytest.fixture
def mermaid_js(tmp_path):
    path = tmp_path / "mermaid.min.js"
    path.write_text("window.mermaid = {};", encoding="utf-8")
    return path


@pytest.fixture
def make_request(tmp_path):
    def _make(html_path, **overrides):
        values = {
            "html_path": Path(html_path),
            "output_path": tmp_path / "out" / "export.pdf",
        }
        values.update(overrides)
        return ConversionRequest(**values)
    return _make


@pytest.fixture
def engine(monkeypatch):
    """Replace ``async_playwright`` so the real PageSession drives a fake browser."""
    def _install(page=None, launch_error=None, start_error=None):
        browser = FakeBrowser(page or FakePage())
        playwright = FakePlaywright(FakeChromium(browser, launch_error))
        monkeypatch.setattr(session_module, "async_playwright",
                            lambda: FakeContextManager(playwright, start_error))
        return playwright
    return _install
