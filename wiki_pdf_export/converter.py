#!/usr/bin/env python3
"""
Exported wiki page to PDF converter using headless Chromium (Puppeteer approach).
This uses Playwright (Python equivalent of Puppeteer) to load the HTML, render
Mermaid diagrams and print the page to PDF.

MIT License - Copyright (c) 2025 Wiki PDF Export
"""

import asyncio
from pathlib import Path
from typing import List, Optional, Sequence

from tqdm import tqdm

from .assembler import PdfAssembler, resolve_layout_options
from .config import ConversionRequest
from .errors import ConfigurationError
from .log import ConsoleLogger, Logger, log_debug
from .models import ConversionState, DiagramArtifact
from .provisioner import resolve_engine
from .rasterizer import DiagramRasterizer, clear_stale_artifacts, embed_images
from .session import PageSession


class WikiPdfConverter:
    """Converts one exported HTML page to PDF.

    Stages run strictly in order, each at most once:
    provision engine, open session, load content, optionally rasterize
    diagrams, emit the PDF, close. The browser is closed on every exit path
    before an error reaches the caller.
    """

    def __init__(self, request: ConversionRequest, logger: Optional[Logger] = None, show_progress: bool = False,
                 session_factory=PageSession, rasterizer: Optional[DiagramRasterizer] = None,
                 engine_resolver=resolve_engine):
        self.request = request
        self.logger = logger or ConsoleLogger()
        self.show_progress = show_progress
        self.session_factory = session_factory
        self.rasterizer = rasterizer or DiagramRasterizer(self.logger)
        self.engine_resolver = engine_resolver
        self.assembler = PdfAssembler(self.logger)
        self.state = ConversionState.IDLE
        self.diagrams: List[DiagramArtifact] = []

    def _stage_count(self) -> int:
        return 5 if self.request.render_mermaid_as_images else 4

    def _read_html(self, html_path: Path) -> str:
        try:
            with open(html_path, 'r', encoding='utf-8') as f:
                return f.read()
        except OSError as exc:
            raise ConfigurationError(f"Cannot read HTML file {html_path}: {exc}") from exc

    async def convert(self, html_path: Optional[Path] = None) -> Path:
        """Run the conversion and return the path of the written PDF."""
        request = self.request
        html_path = Path(html_path) if html_path else request.html_path
        output = request.output_path
        self.diagrams = []
        self.state = ConversionState.IDLE

        self.logger.log("Converting HTML to PDF")

        # The diagrams folder always exists next to the output, rasterizing or not
        diagrams_dir = request.diagrams_dir
        diagrams_dir.mkdir(parents=True, exist_ok=True)
        removed = clear_stale_artifacts(diagrams_dir)
        if removed:
            log_debug(self.logger, f"Removed {removed} diagram images from a previous run")

        try:
            with tqdm(total=self._stage_count(), desc=f"  {html_path.name}", unit="step",
                      leave=False, disable=not self.show_progress) as pbar:
                pbar.set_description(f"  {html_path.name} - Engine")
                executable = await asyncio.to_thread(
                    self.engine_resolver, request.chrome_executable_path, None, self.logger
                )
                self.state = ConversionState.ENGINE_PROVISIONED
                pbar.update(1)

                pbar.set_description(f"  {html_path.name} - Launch")
                async with self.session_factory(executable, self.logger) as session:
                    self.state = ConversionState.SESSION_OPEN
                    pbar.update(1)

                    pbar.set_description(f"  {html_path.name} - Loading")
                    self.logger.log(f"Sending file to Chrome: {html_path}")
                    html_content = self._read_html(html_path)
                    self.logger.log(f"HTML content read from {html_path}")
                    page = await session.load_content(html_content)
                    self.logger.log("HTML page loaded.")
                    self.state = ConversionState.CONTENT_LOADED
                    pbar.update(1)

                    if request.render_mermaid_as_images:
                        pbar.set_description(f"  {html_path.name} - Diagrams")
                        self.diagrams = await self.rasterizer.rasterize(page, request.mermaid_js_path, diagrams_dir)
                        if request.embed_diagram_images and self.diagrams:
                            replaced = await embed_images(page, self.diagrams)
                            log_debug(self.logger, f"Replaced {replaced} diagrams with captured images")
                        self.state = ConversionState.DIAGRAMS_RASTERIZED
                        pbar.update(1)

                    pbar.set_description(f"  {html_path.name} - PDF")
                    options = resolve_layout_options(request)
                    await self.assembler.emit(page, options, output)
                    self.state = ConversionState.PDF_EMITTED
                    pbar.update(1)
        except Exception:
            self.state = ConversionState.FAILED
            raise

        self.state = ConversionState.CLOSED
        self.logger.log(f"PDF created at: {output}")
        return output

    def convert_sync(self, html_path: Optional[Path] = None) -> Path:
        """Blocking wrapper around :meth:`convert`."""
        return asyncio.run(self.convert(html_path))


async def convert_many(requests: Sequence[ConversionRequest], logger: Optional[Logger] = None,
                       **converter_kwargs) -> List[Path]:
    """Convert independent requests concurrently, one browser each.

    Every request is attempted; the first failure is raised after all finish.
    Requests sharing an output directory are rejected before any browser starts.
    """
    seen = set()
    for request in requests:
        diagrams_dir = request.diagrams_dir.absolute()
        if diagrams_dir in seen:
            raise ConfigurationError(f"Requests share diagrams directory {diagrams_dir}")
        seen.add(diagrams_dir)

    logger = logger or ConsoleLogger()
    converters = [WikiPdfConverter(request, logger, **converter_kwargs) for request in requests]
    results = await asyncio.gather(*(c.convert() for c in converters), return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)
