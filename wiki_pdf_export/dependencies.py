"""Pre-flight checks run by the command line before converting."""

from pathlib import Path

from colorama import Fore, Style

from .config import ConversionRequest


def _report(ok: bool, description: str) -> bool:
    if ok:
        print(f"{Fore.GREEN}✓{Style.RESET_ALL} {description}")
    else:
        print(f"{Fore.RED}✗{Style.RESET_ALL} {description}")
    return ok


def check_dependencies(request: ConversionRequest) -> bool:
    """Check everything a conversion needs. Returns True when all checks pass."""
    results = [
        _report(request.html_path.is_file(), f"Input HTML file exists: {request.html_path}"),
    ]
    if request.chrome_executable_path:
        results.append(_report(Path(request.chrome_executable_path).is_file(),
                               f"Chrome executable exists: {request.chrome_executable_path}"))
    if request.render_mermaid_as_images:
        results.append(_report(bool(request.mermaid_js_path) and Path(request.mermaid_js_path).is_file(),
                               f"Mermaid.js script exists: {request.mermaid_js_path}"))
    templates = (
        ("Header", request.header_template, request.header_template_path),
        ("Footer", request.footer_template, request.footer_template_path),
    )
    for label, literal, path in templates:
        # A literal template makes the file irrelevant
        if path and not literal:
            results.append(_report(Path(path).is_file(), f"{label} template file exists: {path}"))
    return all(results)
