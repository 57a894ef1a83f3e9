"""
Error types raised while converting an exported wiki page to PDF.

None of these are recovered inside the converter: each one aborts the
current conversion after the browser has been closed.
"""


class WikiPdfExportError(Exception):
    """Base class for every conversion failure."""


class ConfigurationError(WikiPdfExportError):
    """Invalid or inconsistent configuration values."""


class EngineAcquisitionError(WikiPdfExportError):
    """Chromium could not be downloaded or cached."""


class EngineLaunchError(WikiPdfExportError):
    """Chromium could not be started."""


class EngineLaunchTimeoutError(EngineLaunchError, TimeoutError):
    """Chromium did not start within the launch timeout."""


class PageLoadError(WikiPdfExportError):
    """The HTML content could not be loaded into the page."""


class PageLoadTimeoutError(PageLoadError, TimeoutError):
    """The HTML content did not reach the load state in time."""


class DiagramRuntimeInitError(WikiPdfExportError):
    """Mermaid.js failed its readiness check inside the page."""


class PdfRenderError(WikiPdfExportError):
    """Chromium failed to print the page to PDF."""


class DiagramCaptureError(WikiPdfExportError):
    """A rendered diagram could not be captured as an image."""
