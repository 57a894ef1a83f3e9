"""
Mermaid diagram rasterization inside a loaded page.

The Mermaid runtime is injected from a local file, polled until it is ready,
asked to render every ``.mermaid`` element, and each rendered element is then
captured to ``mermaid_{index}.png``.
"""

import base64
from pathlib import Path
from typing import List, Optional

from PIL import Image
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from .errors import DiagramCaptureError, DiagramRuntimeInitError
from .log import Logger, log_debug, log_warning
from .models import DiagramArtifact

DIAGRAM_SELECTOR = ".mermaid"
ARTIFACT_PATTERN = "mermaid_*.png"

READY_TIMEOUT_MS = 10_000
POLL_INTERVAL_MS = 100

INJECT_SCRIPT_JS = """(src) => {
    const script = document.createElement('script');
    script.type = 'text/javascript';
    script.src = src;
    document.head.appendChild(script);
}"""

RUNTIME_READY_JS = "typeof mermaid !== 'undefined' && mermaid.init !== undefined"

INITIALIZE_JS = "mermaid.initialize({ startOnLoad: true })"

# startOnLoad only fires on window load, which has already happened for
# content set via set_content, so render the pending nodes explicitly.
RUN_PENDING_JS = """() => {
    const pending = '.mermaid:not([data-processed])';
    if (!document.querySelector(pending)) return null;
    if (typeof mermaid.run === 'function') return mermaid.run({ querySelector: pending });
    return mermaid.init(undefined, pending);
}"""

RENDERED_JS = """() => Array.from(document.querySelectorAll('.mermaid'))
    .every(el => el.getAttribute('data-processed') || el.querySelector('svg'))"""

EMBED_IMAGES_JS = """(images) => {
    const nodes = Array.from(document.querySelectorAll('.mermaid'));
    images.forEach((image, i) => {
        const node = nodes[i];
        if (!node) return;
        const img = document.createElement('img');
        img.src = image.src;
        img.width = image.width;
        img.height = image.height;
        img.alt = 'mermaid diagram ' + i;
        img.style.maxWidth = '100%';
        img.style.height = 'auto';
        node.replaceWith(img);
    });
    return nodes.length;
}"""


def script_url(script_path: str) -> str:
    """Local-file URL for a script path, with separators normalised."""
    normalized = str(script_path).replace("\\", "/")
    return "file:///" + normalized.lstrip("/")


def clear_stale_artifacts(output_dir: Path) -> int:
    """Remove diagram images left over from an earlier run."""
    if not output_dir.is_dir():
        return 0
    removed = 0
    for stale in output_dir.glob(ARTIFACT_PATTERN):
        stale.unlink()
        removed += 1
    return removed


class DiagramRasterizer:
    """Renders Mermaid markup in the live page and captures each diagram.

    By default readiness is detected by polling the page. Passing
    ``settle_delay_ms`` restores the older behaviour of sleeping a fixed time
    after loading the runtime and again after initializing it.
    """

    def __init__(self, logger: Logger, ready_timeout_ms: int = READY_TIMEOUT_MS,
                 poll_interval_ms: int = POLL_INTERVAL_MS, settle_delay_ms: Optional[int] = None):
        self.logger = logger
        self.ready_timeout_ms = ready_timeout_ms
        self.poll_interval_ms = poll_interval_ms
        self.settle_delay_ms = settle_delay_ms

    async def rasterize(self, page, mermaid_js_path: str, output_dir: Path) -> List[DiagramArtifact]:
        """Inject Mermaid.js, render all diagrams and save them as PNG files."""
        await self._inject_runtime(page, mermaid_js_path)
        await self._wait_for_runtime(page)
        await self._initialize_runtime(page)
        await self._wait_for_render(page)

        # Verify Mermaid.js initialization
        try:
            is_initialized = await page.evaluate(RUNTIME_READY_JS)
        except PlaywrightError as exc:
            raise DiagramRuntimeInitError(f"Mermaid.js readiness check failed: {exc}") from exc
        if not is_initialized:
            raise DiagramRuntimeInitError("Mermaid.js failed to initialize.")

        return await self._capture(page, Path(output_dir))

    async def _inject_runtime(self, page, mermaid_js_path: str) -> None:
        src = script_url(mermaid_js_path)
        log_debug(self.logger, f"Injecting Mermaid.js from {src}")
        try:
            await page.evaluate(INJECT_SCRIPT_JS, src)
        except PlaywrightError as exc:
            raise DiagramRuntimeInitError(f"Failed to inject Mermaid.js: {exc}") from exc

    async def _wait_for_runtime(self, page) -> None:
        try:
            if self.settle_delay_ms is not None:
                await page.wait_for_timeout(self.settle_delay_ms)
                return
            await page.wait_for_function(RUNTIME_READY_JS, timeout=self.ready_timeout_ms,
                                         polling=self.poll_interval_ms)
        except PlaywrightTimeoutError as exc:
            raise DiagramRuntimeInitError(
                f"Mermaid.js was not available after {self.ready_timeout_ms}ms"
            ) from exc
        except PlaywrightError as exc:
            raise DiagramRuntimeInitError(f"Waiting for Mermaid.js failed: {exc}") from exc

    async def _initialize_runtime(self, page) -> None:
        try:
            await page.evaluate(INITIALIZE_JS)
        except PlaywrightError as exc:
            raise DiagramRuntimeInitError(f"Mermaid.js failed to initialize: {exc}") from exc
        try:
            await page.evaluate(RUN_PENDING_JS)
        except PlaywrightError as exc:
            # Syntax errors in one diagram must not block capturing the rest
            log_warning(self.logger, f"Mermaid reported a render error: {exc}")

    async def _wait_for_render(self, page) -> None:
        try:
            if self.settle_delay_ms is not None:
                await page.wait_for_timeout(self.settle_delay_ms)
                return
            await page.wait_for_function(RENDERED_JS, timeout=self.ready_timeout_ms,
                                         polling=self.poll_interval_ms)
        except PlaywrightTimeoutError:
            log_warning(self.logger, f"Mermaid diagrams did not finish rendering after {self.ready_timeout_ms}ms")
        except PlaywrightError as exc:
            raise DiagramCaptureError(f"Waiting for Mermaid diagrams failed: {exc}") from exc

    async def _capture(self, page, output_dir: Path) -> List[DiagramArtifact]:
        output_dir.mkdir(parents=True, exist_ok=True)
        try:
            elements = await page.query_selector_all(DIAGRAM_SELECTOR)
        except PlaywrightError as exc:
            raise DiagramCaptureError(f"Failed to find Mermaid diagrams: {exc}") from exc

        self.logger.log("Capturing Mermaid diagrams as images...")
        artifacts = []
        for i, element in enumerate(elements):
            screenshot_path = (output_dir / f"mermaid_{i}.png").absolute()
            try:
                await element.screenshot(path=str(screenshot_path), type="png")
            except PlaywrightError as exc:
                raise DiagramCaptureError(f"Failed to capture diagram {i}: {exc}") from exc
            with Image.open(screenshot_path) as img:
                width, height = img.size
            artifacts.append(DiagramArtifact(index=i, path=screenshot_path, width=width, height=height))
            self.logger.log(f"Captured screenshot: {screenshot_path}")
        return artifacts


async def embed_images(page, artifacts: List[DiagramArtifact]) -> int:
    """Replace each diagram element in the page with its captured image."""
    images = []
    for artifact in artifacts:
        encoded = base64.b64encode(artifact.path.read_bytes()).decode("ascii")
        images.append({
            "src": f"data:image/png;base64,{encoded}",
            "width": artifact.width,
            "height": artifact.height,
        })
    try:
        return await page.evaluate(EMBED_IMAGES_JS, images)
    except PlaywrightError as exc:
        raise DiagramCaptureError(f"Failed to embed diagram images: {exc}") from exc
