"""
Configuration for a single wiki page export.

Values are resolved in priority order: CLI arguments, environment variables,
an optional JSON config file, then built-in defaults.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigurationError

DEFAULT_OUTPUT_NAME = "export.pdf"
DIAGRAMS_DIR_NAME = "mermaid_diagrams"

# Config key -> environment variable
ENV_VARS = {
    "output": "WIKI_PDF_OUTPUT",
    "chrome_executable_path": "WIKI_PDF_CHROME_PATH",
    "render_mermaid_as_images": "WIKI_PDF_RENDER_MERMAID",
    "mermaid_js_path": "WIKI_PDF_MERMAID_JS",
    "header_template": "WIKI_PDF_HEADER_TEMPLATE",
    "header_template_path": "WIKI_PDF_HEADER_TEMPLATE_PATH",
    "footer_template": "WIKI_PDF_FOOTER_TEMPLATE",
    "footer_template_path": "WIKI_PDF_FOOTER_TEMPLATE_PATH",
    "embed_diagram_images": "WIKI_PDF_EMBED_DIAGRAMS",
}

BOOL_KEYS = ("render_mermaid_as_images", "embed_diagram_images")

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class ConversionRequest:
    """Immutable input of one conversion."""

    html_path: Path
    output_path: Path
    chrome_executable_path: Optional[str] = None
    render_mermaid_as_images: bool = False
    mermaid_js_path: Optional[str] = None
    header_template: Optional[str] = None
    header_template_path: Optional[str] = None
    footer_template: Optional[str] = None
    footer_template_path: Optional[str] = None
    embed_diagram_images: bool = False

    @property
    def diagrams_dir(self) -> Path:
        """Sibling directory of the output PDF holding rasterized diagrams."""
        return self.output_path.parent / DIAGRAMS_DIR_NAME


def parse_bool(value: Any, key: str = "value") -> bool:
    """Parse booleans coming from env vars or JSON."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid boolean for '{key}': {value!r}")


class Config:
    """Layered configuration lookup."""

    def __init__(self, cli_config: Optional[Dict[str, Any]] = None, config_file: Optional[str] = None):
        self.cli_config = {k: v for k, v in (cli_config or {}).items() if v is not None}
        self.file_config = self._load_file(config_file) if config_file else {}

    @staticmethod
    def _load_file(config_file: str) -> Dict[str, Any]:
        path = Path(config_file)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as exc:
            raise ConfigurationError(f"Config file not found: {path}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Config file {path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")
        unknown = set(data) - set(ENV_VARS)
        if unknown:
            raise ConfigurationError(f"Unknown config keys in {path}: {', '.join(sorted(unknown))}")
        return data

    def get(self, key: str, default: Any = None) -> Any:
        if key in self.cli_config:
            return self.cli_config[key]
        env_value = os.environ.get(ENV_VARS[key])
        if env_value:
            return env_value
        if self.file_config.get(key) is not None:
            return self.file_config[key]
        return default

    def get_output_path(self) -> Path:
        output = self.get("output")
        if not output:
            return Path.cwd() / DEFAULT_OUTPUT_NAME
        return Path(output).absolute()

    def get_bool(self, key: str) -> bool:
        return parse_bool(self.get(key, False), key)

    def _get_str(self, key: str) -> Optional[str]:
        value = self.get(key)
        return str(value) if value else None

    def to_request(self, html_path: str) -> ConversionRequest:
        """Build the immutable request for one HTML file."""
        request = ConversionRequest(
            html_path=Path(html_path).absolute(),
            output_path=self.get_output_path(),
            chrome_executable_path=self._get_str("chrome_executable_path"),
            render_mermaid_as_images=self.get_bool("render_mermaid_as_images"),
            mermaid_js_path=self._get_str("mermaid_js_path"),
            header_template=self._get_str("header_template"),
            header_template_path=self._get_str("header_template_path"),
            footer_template=self._get_str("footer_template"),
            footer_template_path=self._get_str("footer_template_path"),
            embed_diagram_images=self.get_bool("embed_diagram_images"),
        )
        if request.render_mermaid_as_images and not request.mermaid_js_path:
            raise ConfigurationError("Mermaid rendering is enabled but no Mermaid.js path was given")
        if request.embed_diagram_images and not request.render_mermaid_as_images:
            raise ConfigurationError("Embedding diagram images requires Mermaid rendering to be enabled")
        return request
