#!/usr/bin/env python3
"""
Convert an exported wiki HTML page to PDF.

Usage:
    python convert_html_to_pdf.py page.html -o page.pdf --mermaid --mermaid-js mermaid.min.js
"""

import sys

from wiki_pdf_export.cli import main


if __name__ == "__main__":
    sys.exit(main())
