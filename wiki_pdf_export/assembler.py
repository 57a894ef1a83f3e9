"""PDF layout resolution and print-to-PDF."""

import os
import tempfile
from pathlib import Path
from typing import Optional

from playwright.async_api import Error as PlaywrightError

from .config import ConversionRequest
from .errors import ConfigurationError, PdfRenderError
from .log import Logger
from .models import PdfLayoutOptions


def resolve_template(literal: Optional[str], template_path: Optional[str]) -> Optional[str]:
    """Literal template wins over the template file; None when neither is set."""
    if literal:
        return literal
    if template_path:
        try:
            with open(template_path, 'r', encoding='utf-8') as f:
                return f.read()
        except OSError as exc:
            raise ConfigurationError(f"Cannot read template file {template_path}: {exc}") from exc
    return None


def resolve_layout_options(request: ConversionRequest) -> PdfLayoutOptions:
    """Build the print options for a request."""
    return PdfLayoutOptions(
        header_template=resolve_template(request.header_template, request.header_template_path),
        footer_template=resolve_template(request.footer_template, request.footer_template_path),
    )


def write_atomic(path: Path, data: bytes) -> None:
    """Write bytes next to ``path`` and move them into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = tempfile.NamedTemporaryFile("wb", delete=False, dir=path.parent, suffix=".part")
    try:
        with tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp.name, path)
    except BaseException:
        try:
            os.unlink(tmp.name)
        except FileNotFoundError:
            pass
        raise


class PdfAssembler:
    """Prints the current page state to a PDF file."""

    def __init__(self, logger: Logger):
        self.logger = logger

    async def emit(self, page, options: PdfLayoutOptions, output_path: Path) -> Path:
        """Print ``page`` with ``options`` and publish the file at ``output_path``.

        The PDF is rendered to memory first, so a failed print never leaves a
        file at the output path.
        """
        self.logger.log("Generating PDF document...")
        try:
            pdf_bytes = await page.pdf(**options.to_pdf_kwargs())
        except PlaywrightError as exc:
            raise PdfRenderError(f"Failed to print PDF: {exc}") from exc

        try:
            write_atomic(output_path, pdf_bytes)
        except OSError as exc:
            raise PdfRenderError(f"Failed to write PDF to {output_path}: {exc}") from exc
        self.logger.log("PDF document is ready.")
        return output_path
