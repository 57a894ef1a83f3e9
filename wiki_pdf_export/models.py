"""Value types shared by the conversion stages."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional


class ConversionState(str, Enum):
    IDLE = "idle"
    ENGINE_PROVISIONED = "engine_provisioned"
    SESSION_OPEN = "session_open"
    CONTENT_LOADED = "content_loaded"
    DIAGRAMS_RASTERIZED = "diagrams_rasterized"
    PDF_EMITTED = "pdf_emitted"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass(frozen=True)
class DiagramArtifact:
    """One rasterized Mermaid diagram."""

    index: int
    path: Path
    width: int = 0
    height: int = 0


@dataclass(frozen=True)
class PdfLayoutOptions:
    """Resolved print-to-PDF options for one request."""

    format: str = "A4"
    margin: Dict[str, str] = field(default_factory=lambda: {
        "top": "80px",
        "bottom": "100px",
        "left": "100px",
        "right": "100px",
    })
    header_template: Optional[str] = None
    footer_template: Optional[str] = None
    print_background: bool = True
    display_header_footer: bool = True
    prefer_css_page_size: bool = False

    def to_pdf_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for Playwright's ``Page.pdf``."""
        kwargs: Dict[str, Any] = {
            "format": self.format,
            "margin": dict(self.margin),
            "print_background": self.print_background,
            "display_header_footer": self.display_header_footer,
            "prefer_css_page_size": self.prefer_css_page_size,
        }
        # Absent templates fall back to Chromium's default header/footer
        if self.header_template is not None:
            kwargs["header_template"] = self.header_template
        if self.footer_template is not None:
            kwargs["footer_template"] = self.footer_template
        return kwargs
