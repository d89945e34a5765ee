"""
Utility functions: config loading, logging setup, and helpers.

Timing keys are all in milliseconds so they can be passed straight to
page.wait_for_timeout() and the scan scheduler.
"""

import os
import re
import logging
import yaml
from datetime import datetime


ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
LOG_DIR = os.path.join(ROOT_DIR, "logs")
SCREENSHOT_DIR = os.path.join(LOG_DIR, "screenshots")
HTMLDUMP_DIR   = os.path.join(LOG_DIR, "htmldumps")

LOGGER_NAME = "lazada_autoproc"


def setup_logging() -> logging.Logger:
    """Configure and return the project logger."""
    os.makedirs(LOG_DIR, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(LOG_DIR, f"run_{timestamp}.log")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Prevent duplicate handlers on repeated calls
    if logger.handlers:
        return logger

    # Console handler
    ch = logging.StreamHandler()
    ch.setLevel(logging.INFO)
    ch_fmt = logging.Formatter("[%(asctime)s] %(levelname)-8s %(message)s", datefmt="%H:%M:%S")
    ch.setFormatter(ch_fmt)

    # File handler
    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh_fmt = logging.Formatter("[%(asctime)s] %(levelname)-8s %(name)s — %(message)s")
    fh.setFormatter(fh_fmt)

    logger.addHandler(ch)
    logger.addHandler(fh)

    logger.info(f"Log file: {log_file}")
    return logger


# ── Configuration ────────────────────────────────────────────────────────

_DELAY_KEYS = {
    "debounce_ms": 100,
    "dialog_render_ms": 1000,
    "option_settle_ms": 300,
    "dialog_close_ms": 1500,
}

_FOLLOWUP_KEYS = {
    "scan_followups_ms": [1500, 2500, 3500],
    "checkin_followups_ms": [1500, 2500],
    "row_added_followups_ms": [500],
}


def load_config(config_path: str = None) -> dict:
    """Load and validate config.yaml, applying safe defaults for optional keys."""
    if config_path is None:
        config_path = os.path.join(ROOT_DIR, "config.yaml")

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"Config file must contain a mapping, got: {type(config).__name__}")

    if not config.get("portal_url"):
        raise ValueError("Missing required config key: 'portal_url'")

    # Browser
    config.setdefault("headless", False)
    config.setdefault("save_session", True)

    # Fixed synchronisation delays
    for key, default in _DELAY_KEYS.items():
        value = config.setdefault(key, default)
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ValueError(f"{key} must be int >= 0, got: {value!r}")

    poll = config.setdefault("poll_interval_ms", 50)
    if not isinstance(poll, int) or isinstance(poll, bool) or poll < 10:
        raise ValueError(f"poll_interval_ms must be int >= 10, got: {poll!r}")

    # Signal follow-up scans — an empty list disables that signal
    for key, default in _FOLLOWUP_KEYS.items():
        value = config.setdefault(key, list(default))
        if value is None:
            value = config[key] = []
        if not isinstance(value, list) or any(
            not isinstance(v, int) or isinstance(v, bool) or v < 0 for v in value
        ):
            raise ValueError(f"{key} must be a list of int >= 0, got: {value!r}")

    for key, default in (("submit_required", False), ("capture_diagnostics", True)):
        value = config.setdefault(key, default)
        if not isinstance(value, bool):
            raise ValueError(f"{key} must be true or false, got: {value!r}")

    return config


def parse_leading_int(text: str) -> int:
    """
    Parse the integer at the start of a cell text like '3' or '2 attempts'.
    Returns 0 if the text does not start with a digit.
    """
    match = re.match(r"\d+", (text or "").strip())
    if match:
        return int(match.group(0))
    return 0


# ── Diagnostics ──────────────────────────────────────────────────────────

def capture_diagnostics(page, label: str = "error") -> str | None:
    """
    Capture diagnostic data about the monitored page without ever raising.

    Chain:
      1. Always log page.url and page.title()
      2. page.screenshot() with a hard 5s timeout
      3. On failure → page.content() → save as .html dump

    Returns the file path of the saved screenshot or HTML dump, or None.
    """
    logger = logging.getLogger(LOGGER_NAME)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    safe_label = re.sub(r"[^\w\-]", "_", label)[:80]

    try:
        current_url = page.url
    except Exception:
        current_url = "<unavailable>"
    try:
        current_title = page.title()
    except Exception:
        current_title = "<unavailable>"
    logger.debug(f"[diag] url={current_url}  title={current_title}")

    try:
        os.makedirs(SCREENSHOT_DIR, exist_ok=True)
        filepath = os.path.join(SCREENSHOT_DIR, f"{timestamp}_{safe_label}.png")
        page.screenshot(path=filepath, full_page=False, timeout=5_000)
        logger.info(f"📸 Screenshot saved: {filepath}")
        return filepath
    except Exception as ss_err:
        logger.debug(f"Screenshot failed ({ss_err}) — falling back to HTML dump")

    try:
        os.makedirs(HTMLDUMP_DIR, exist_ok=True)
        html_filepath = os.path.join(HTMLDUMP_DIR, f"{timestamp}_{safe_label}.html")
        html_content = page.content()
        with open(html_filepath, "w", encoding="utf-8") as f:
            f.write(html_content)
        logger.info(f"📄 HTML dump saved: {html_filepath}")
        return html_filepath
    except Exception as html_err:
        logger.warning(f"HTML dump also failed: {html_err}")
        return None


def get_session_path() -> str:
    """Return the path to the browser session storage file."""
    return os.path.join(ROOT_DIR, "session.json")
