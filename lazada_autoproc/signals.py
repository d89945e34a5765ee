"""
Inbound scan signals from the monitored page.

Three independent producers run inside the page and report back through a
function exposed with page.expose_function():

  scan       — Enter pressed in the scan input (barcode scanners send Enter)
  check_in   — a button labelled exactly "Check-in" was clicked
  row_added  — a MutationObserver saw a new result row in the table body

Each signal schedules one or more delayed scan requests; the table only
updates some time after the operator's action, so the follow-up
delays are kept. An empty delay list disables that producer, and any
subset of producers may be missing — the row observer alone is enough.
"""

import json
import logging

from lazada_autoproc.processor import SCAN_INPUT
from lazada_autoproc.scanner import ROW_CLASS, TABLE_BODY
from lazada_autoproc.trigger import ScanTrigger, Scheduler

logger = logging.getLogger("lazada_autoproc")

BINDING_NAME = "_pyLazadaSignal"

SIGNAL_SCAN      = "scan"
SIGNAL_CHECK_IN  = "check_in"
SIGNAL_ROW_ADDED = "row_added"

CHECK_IN_LABEL = "Check-in"

_CONFIG_KEYS = {
    SIGNAL_SCAN: "scan_followups_ms",
    SIGNAL_CHECK_IN: "checkin_followups_ms",
    SIGNAL_ROW_ADDED: "row_added_followups_ms",
}

# Injected via page.add_init_script() so it is re-installed on every load.
# %(config)s is replaced with a JSON object built by build_listener_script().
_JS_SIGNAL_LISTENERS = r"""
(function () {
    if (window.__lazadaAutoprocInstalled) return;
    window.__lazadaAutoprocInstalled = true;

    const CFG = %(config)s;

    const emit = (kind, value) => {
        const fn = window[CFG.binding];
        if (!fn) return;
        try {
            Promise.resolve(fn(kind, value || "")).catch(() => {});
        } catch (e) { /* page is unloading */ }
    };

    if (CFG.scan) {
        document.addEventListener('keydown', (e) => {
            const t = e.target;
            if (!t || !t.matches || !t.matches(CFG.scanInput)) return;
            if (e.key === 'Enter' || e.keyCode === 13) {
                emit('scan', (t.value || '').trim());
            }
        }, true);
    }

    if (CFG.checkIn) {
        document.addEventListener('click', (e) => {
            const t = e.target;
            const button = t && t.closest ? t.closest('button') : null;
            if (button && button.textContent.trim() === CFG.checkInLabel) {
                emit('check_in', '');
            }
        }, true);
    }

    if (CFG.rowAdded) {
        const observe = () => {
            const body = document.querySelector(CFG.tableBody);
            if (!body) {
                setTimeout(observe, 1000);
                return;
            }
            new MutationObserver((mutations) => {
                const added = mutations.some((m) =>
                    m.type === 'childList' &&
                    Array.from(m.addedNodes).some((n) =>
                        n.nodeName === 'TR' && n.classList.contains(CFG.rowClass)));
                if (added) emit('row_added', '');
            }).observe(body, { childList: true, subtree: false });
        };
        observe();
    }
})();
"""


class SignalRouter:
    """Turn page signals into delayed ScanTrigger.request_scan() calls."""

    def __init__(self, scheduler: Scheduler, trigger: ScanTrigger, followups: dict):
        self._scheduler = scheduler
        self._trigger = trigger
        self._followups = {kind: list(delays or []) for kind, delays in followups.items()}
        self.received: dict = {kind: 0 for kind in self._followups}

    @classmethod
    def from_config(cls, scheduler: Scheduler, trigger: ScanTrigger, config: dict) -> "SignalRouter":
        followups = {kind: config.get(key, []) for kind, key in _CONFIG_KEYS.items()}
        return cls(scheduler, trigger, followups)

    def enabled(self, kind: str) -> bool:
        return bool(self._followups.get(kind))

    def dispatch(self, kind: str, value: str = "") -> int:
        """Handle one page signal. Returns the number of scans scheduled."""
        delays = self._followups.get(kind)
        if delays is None:
            logger.warning(f"Ignoring unknown page signal: {kind!r}")
            return 0

        self.received[kind] = self.received.get(kind, 0) + 1
        if kind == SIGNAL_SCAN:
            logger.info(f"Scan detected (Enter pressed) — scanned value: {value!r}")
        elif kind == SIGNAL_CHECK_IN:
            logger.info("Check-in button click detected")
        else:
            logger.info("New row detected in table")

        for delay in delays:
            self._scheduler.call_later(delay, self._trigger.request_scan)
        return len(delays)


def build_listener_script(router: SignalRouter) -> str:
    config = {
        "binding": BINDING_NAME,
        "scan": router.enabled(SIGNAL_SCAN),
        "checkIn": router.enabled(SIGNAL_CHECK_IN),
        "rowAdded": router.enabled(SIGNAL_ROW_ADDED),
        "scanInput": SCAN_INPUT,
        "checkInLabel": CHECK_IN_LABEL,
        "tableBody": TABLE_BODY,
        "rowClass": ROW_CLASS,
    }
    return _JS_SIGNAL_LISTENERS % {"config": json.dumps(config)}


def install_signal_listeners(page, router: SignalRouter) -> None:
    """
    Expose the signal binding and register the listener script.

    Must be called BEFORE navigating to the portal so add_init_script
    fires on the first load and every reload after it.
    """
    page.expose_function(BINDING_NAME, router.dispatch)
    page.add_init_script(build_listener_script(router))
    active = [kind for kind in _CONFIG_KEYS if router.enabled(kind)]
    logger.info(f"Page signal listeners installed: {', '.join(active) or 'none'}")
