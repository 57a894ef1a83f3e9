"""Command line entry point."""

import argparse
import sys
from typing import List, Optional

from .config import Config
from .converter import WikiPdfConverter
from .dependencies import check_dependencies
from .errors import WikiPdfExportError
from .log import ConsoleLogger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Convert an exported wiki HTML page to PDF with optional Mermaid diagram rendering (Puppeteer approach)")
    parser.add_argument("html", help="Path to the exported HTML page")
    parser.add_argument("-o", "--output", default=None, help="Output PDF path (default: export.pdf in the current directory)")
    parser.add_argument("--chrome-path", dest="chrome_executable_path", default=None, help="Chrome/Chromium executable (default: download to user temp)")
    parser.add_argument("--mermaid", dest="render_mermaid_as_images", action="store_true", default=None, help="Render Mermaid diagrams and capture them as images")
    parser.add_argument("--mermaid-js", dest="mermaid_js_path", default=None, help="Path to a local mermaid.min.js")
    parser.add_argument("--embed-diagrams", dest="embed_diagram_images", action="store_true", default=None, help="Print the captured diagram images instead of the live rendered diagrams")
    parser.add_argument("--header-template", default=None, help="HTML header template (takes precedence over --header-template-path)")
    parser.add_argument("--header-template-path", default=None, help="File containing the HTML header template")
    parser.add_argument("--footer-template", default=None, help="HTML footer template (takes precedence over --footer-template-path)")
    parser.add_argument("--footer-template-path", default=None, help="File containing the HTML footer template")
    parser.add_argument("--config", default=None, help="JSON config file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging for detailed output")
    parser.add_argument("--no-progress", action="store_true", help="Hide the progress bar")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    logger = ConsoleLogger(debug=args.debug)

    cli_config = {
        "output": args.output,
        "chrome_executable_path": args.chrome_executable_path,
        "render_mermaid_as_images": args.render_mermaid_as_images,
        "mermaid_js_path": args.mermaid_js_path,
        "embed_diagram_images": args.embed_diagram_images,
        "header_template": args.header_template,
        "header_template_path": args.header_template_path,
        "footer_template": args.footer_template,
        "footer_template_path": args.footer_template_path,
    }

    try:
        request = Config(cli_config, config_file=args.config).to_request(args.html)
    except WikiPdfExportError as e:
        logger.error(str(e))
        return 1

    # Check dependencies
    if not check_dependencies(request):
        return 1

    converter = WikiPdfConverter(request, logger, show_progress=not args.no_progress)
    try:
        output = converter.convert_sync()
    except WikiPdfExportError as e:
        logger.error(f"Conversion failed: {e}")
        return 1

    logger.success(f"Converted {request.html_path.name} to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
