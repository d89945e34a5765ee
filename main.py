"""
Lazada Logistics Auto-processor — Entry Point

Opens the logistics portal in Chromium and watches the results table:
rows reporting a refused/cancelled delivery, or 2+ attempts, get their
re-attempt answer set to "No" through the portal's own Edit dialog.

Usage:
    python main.py
    python main.py --config path/to/config.yaml
"""

import argparse
import os

from playwright.sync_api import sync_playwright

from lazada_autoproc.utils import setup_logging, load_config, get_session_path, capture_diagnostics
from lazada_autoproc.monitor import build_session, open_portal, run_monitor
from lazada_autoproc.signals import install_signal_listeners


def main():
    # ── Parse arguments ──────────────────────────────────────────────
    parser = argparse.ArgumentParser(
        description="Automatically answer 'No' to re-attempts for refused or failed deliveries"
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to config.yaml (default: ./config.yaml)"
    )
    args = parser.parse_args()

    # ── Setup ────────────────────────────────────────────────────────
    logger = setup_logging()
    config = load_config(args.config)

    logger.info("Configuration loaded:")
    logger.info(f"  Portal:           {config['portal_url']}")
    logger.info(f"  Headless:         {config['headless']}")
    logger.info(f"  Debounce:         {config['debounce_ms']}ms")
    logger.info(
        f"  Dialog waits:     render {config['dialog_render_ms']}ms / "
        f"settle {config['option_settle_ms']}ms / close {config['dialog_close_ms']}ms"
    )
    logger.info(f"  Submit required:  {config['submit_required']}")

    # ── Launch browser ───────────────────────────────────────────────
    session_path = get_session_path()

    with sync_playwright() as p:
        browser = p.chromium.launch(headless=config["headless"])
        context = None
        page = None
        try:
            ctx_opts: dict = {}
            if os.path.exists(session_path):
                logger.info("Loading saved session...")
                ctx_opts["storage_state"] = session_path
            if config["headless"]:
                ctx_opts["viewport"] = {"width": 1920, "height": 1080}

            context = browser.new_context(**ctx_opts)
            page = context.new_page()

            # Bindings and init script go in BEFORE the first navigation
            session = build_session(page, config)
            install_signal_listeners(page, session.router)
            open_portal(page, config["portal_url"])

            run_monitor(page, session, poll_interval_ms=config["poll_interval_ms"])
        except KeyboardInterrupt:
            logger.info("\nCtrl+C detected. Shutting down...")
        except Exception as e:
            logger.error(f"Monitor stopped with error: {e}")
            if page is not None and not page.is_closed():
                capture_diagnostics(page, "monitor_error")
        finally:
            if config["save_session"] and context is not None:
                try:
                    context.storage_state(path=session_path)
                    logger.info(f"Session saved to: {session_path}")
                except Exception as e:
                    logger.debug(f"Session not saved: {e}")
            logger.info("Closing browser...")
            try:
                browser.close()
            except Exception:
                pass
            logger.info("Goodbye!")


if __name__ == "__main__":
    main()
