"""
Chromium provisioning.

Returns a caller supplied executable untouched, otherwise installs Playwright's
Chromium build into a cache directory under the system temp dir and returns
the path of its executable. An already populated cache is reused without any
network access.
"""

import os
import re
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import List, Optional

from .errors import EngineAcquisitionError
from .log import Logger, log_debug

CACHE_DIR_NAME = "AzureDevOpsWikiExporter"
INSTALL_TIMEOUT_S = 600

# Playwright writes this marker once a browser directory is fully extracted
INSTALL_MARKER = "INSTALLATION_COMPLETE"

# Executable location inside a chromium-<revision> directory, per platform layout
EXECUTABLE_CANDIDATES = [
    ("chrome-linux64", "chrome"),
    ("chrome-linux", "chrome"),
    ("chrome-win64", "chrome.exe"),
    ("chrome-win", "chrome.exe"),
    ("chrome-mac-arm64", "Google Chrome for Testing.app", "Contents", "MacOS", "Google Chrome for Testing"),
    ("chrome-mac-x64", "Google Chrome for Testing.app", "Contents", "MacOS", "Google Chrome for Testing"),
    ("chrome-mac", "Chromium.app", "Contents", "MacOS", "Chromium"),
]

_REVISION_RE = re.compile(r"^chromium-(\d+)$")


def default_cache_dir() -> Path:
    """Engine cache directory under the platform temp dir."""
    return Path(tempfile.gettempdir()) / CACHE_DIR_NAME


def _revision_dirs(cache_dir: Path) -> List[Path]:
    """Installed chromium-<revision> directories, newest first."""
    found = []
    for child in cache_dir.iterdir():
        match = _REVISION_RE.match(child.name)
        if match and child.is_dir():
            found.append((int(match.group(1)), child))
    return [path for _, path in sorted(found, reverse=True)]


def find_cached_executable(cache_dir: Path) -> Optional[str]:
    """Return the newest completely installed Chromium executable, if any."""
    if not cache_dir.is_dir():
        return None
    for revision_dir in _revision_dirs(cache_dir):
        if not (revision_dir / INSTALL_MARKER).exists():
            continue
        for parts in EXECUTABLE_CANDIDATES:
            exe = revision_dir.joinpath(*parts)
            if exe.is_file():
                return str(exe)
    return None


def _install_chromium(cache_dir: Path, logger: Optional[Logger]) -> None:
    """Run Playwright's installer with the cache dir as its browsers path.

    The installer downloads into a temporary location and holds a lock on the
    browsers directory while extracting, so concurrent first runs are safe.
    """
    env = dict(os.environ)
    env["PLAYWRIGHT_BROWSERS_PATH"] = str(cache_dir)
    cmd = [sys.executable, "-m", "playwright", "install", "chromium"]
    if logger is not None:
        log_debug(logger, f"Running {' '.join(cmd)} (PLAYWRIGHT_BROWSERS_PATH={cache_dir})")
    try:
        subprocess.run(cmd, check=True, capture_output=True, text=True, env=env, timeout=INSTALL_TIMEOUT_S)
    except subprocess.CalledProcessError as exc:
        raise EngineAcquisitionError(f"Chromium download failed: {(exc.stderr or exc.stdout or '').strip()}") from exc
    except subprocess.TimeoutExpired as exc:
        raise EngineAcquisitionError(f"Chromium download timed out after {INSTALL_TIMEOUT_S}s") from exc
    except OSError as exc:
        raise EngineAcquisitionError(f"Could not run the Playwright installer: {exc}") from exc


def resolve_engine(explicit_path: Optional[str] = None, cache_dir: Optional[Path] = None,
                   logger: Optional[Logger] = None) -> str:
    """Return an executable Chromium path, downloading it if necessary."""
    if explicit_path:
        return explicit_path

    cache_dir = Path(cache_dir) if cache_dir else default_cache_dir()
    cached = find_cached_executable(cache_dir)
    if cached:
        if logger is not None:
            log_debug(logger, f"Using cached Chromium: {cached}")
        return cached

    if logger is not None:
        logger.log("No Chrome path defined, downloading to user temp...")
    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise EngineAcquisitionError(f"Cannot create engine cache directory {cache_dir}: {exc}") from exc

    _install_chromium(cache_dir, logger)

    executable = find_cached_executable(cache_dir)
    if not executable:
        raise EngineAcquisitionError(f"Chromium was installed but no executable was found under {cache_dir}")
    if logger is not None:
        logger.log("Chrome ready.")
    return executable
