"""
Monitor: wire the session components together and pump the page.

Everything runs on the thread that owns the Playwright sync API.
page.wait_for_timeout() is the pump: while it waits, Playwright dispatches
exposed-function calls from the page (which only schedule timers), and
between pumps the loop fires whatever timers are due.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

from playwright.sync_api import Error as PlaywrightError

from lazada_autoproc.ledger import DedupLedger, ProcessingState
from lazada_autoproc.processor import Processor, UiWaits
from lazada_autoproc.scanner import Scanner
from lazada_autoproc.signals import SignalRouter
from lazada_autoproc.trigger import ScanTrigger, Scheduler

logger = logging.getLogger("lazada_autoproc")

WAIT_STRATEGY = "domcontentloaded"
NAV_TIMEOUT = 60_000


@dataclass
class MonitorSession:
    scheduler: Scheduler
    trigger: ScanTrigger
    ledger: DedupLedger
    state: ProcessingState
    processor: Processor
    scanner: Scanner
    router: SignalRouter

    def reset(self) -> None:
        """Drop per-document state; the page reloaded and its rows are new."""
        discarded = self.ledger.counts()
        self.trigger.cancel()
        self.scheduler.clear()
        self.ledger.reset()
        if any(discarded.values()):
            logger.info(f"Page reloaded — session state reset (discarded {discarded})")


def build_session(
    page,
    config: dict,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = None,
) -> MonitorSession:
    """Create the state objects once and inject them into Scanner and Processor."""
    scheduler = Scheduler(clock)
    ledger = DedupLedger()
    state = ProcessingState()
    waits = UiWaits.from_config(sleep or page.wait_for_timeout, config)
    processor = Processor(
        page,
        ledger,
        state,
        waits,
        submit_required=config.get("submit_required", False),
        diagnostics=config.get("capture_diagnostics", True),
    )
    scanner = Scanner(page, ledger, state, processor)
    trigger = ScanTrigger(scheduler, scanner.scan, delay_ms=config.get("debounce_ms", 100))
    router = SignalRouter.from_config(scheduler, trigger, config)
    return MonitorSession(
        scheduler=scheduler,
        trigger=trigger,
        ledger=ledger,
        state=state,
        processor=processor,
        scanner=scanner,
        router=router,
    )


def open_portal(page, portal_url: str) -> None:
    logger.info(f"Navigating to: {portal_url}")
    page.goto(portal_url, wait_until=WAIT_STRATEGY, timeout=NAV_TIMEOUT)
    logger.info("Portal loaded. Waiting for scans...")


def run_monitor(page, session: MonitorSession, *, poll_interval_ms: int = 50) -> None:
    """
    Pump the page until it (or the browser) is closed.

    A full document load resets the session: the in-page listeners are
    re-installed by the init script, and the ledger starts empty as it
    would for a freshly injected page script.
    """
    page.on("load", lambda _page: session.reset())

    while not page.is_closed():
        session.scheduler.run_due()
        try:
            page.wait_for_timeout(poll_interval_ms)
        except PlaywrightError as e:
            if page.is_closed():
                break
            logger.error(f"Page pump failed: {e}")
            raise

    counts = session.ledger.counts()
    logger.info(
        f"Page closed — {counts['completed']} row(s) processed "
        f"in {session.scanner.passes} scan pass(es)"
    )
