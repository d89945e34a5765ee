"""
Processor: drive the portal's own edit dialog for one selected row.

Flow per row:
  1. Pin the row to its current DOM node, click its Edit control
  2. Wait for the re-attempt dialog to render
  3. Select the second radio option ("No") — input first, then its label
  4. Wait briefly, click the dialog's primary (Submit) button
  5. Mark the row completed
  6. Wait for the dialog to close, refocus the scan input

State machine (one ProcessingRun per invocation):
  IDLE → INVOKING → AWAITING_OPTION → AWAITING_SUBMIT → REFOCUSING → DONE
  Any state can transition to FAILED.

The dialog's appearance is not observable without instrumenting the portal,
so the waits are fixed durations (UiWaits) rather than selector waits.
"""

import logging
import time
from typing import Callable

from lazada_autoproc.ledger import DedupLedger, ProcessingState
from lazada_autoproc.rows import RowRecord, pin_row, release_row
from lazada_autoproc.utils import capture_diagnostics

logger = logging.getLogger("lazada_autoproc")

# Dialog selectors
OPTION_GROUP   = "#dialogReattempt"
OPTION_WRAPPER = ".lazada-logistics-radio-wrapper"
OPTION_INPUT   = 'input[type="radio"]'
NO_OPTION_INDEX = 1
DIALOG_FOOTER  = ".lazada-logistics-dialog-footer"
SUBMIT_CONTROL = ".lazada-logistics-btn-primary"

# Scan input the operator (or barcode scanner) types into
SCAN_INPUT = "#trackingNumber"


class Stage:
    IDLE            = "idle"
    INVOKING        = "invoking"          # Edit control clicked, dialog rendering
    AWAITING_OPTION = "awaiting_option"   # looking for the Yes/No radio group
    AWAITING_SUBMIT = "awaiting_submit"   # "No" selected, about to submit
    REFOCUSING      = "refocusing"        # submitted, waiting for dialog to close
    DONE            = "done"
    FAILED          = "failed"


class StepFailed(Exception):
    """A required dialog element was absent at a wait point."""


class UiWaits:
    """
    Named synchronisation waits against the portal UI.

    Args:
        sleep: Callable taking milliseconds. In production this is
               page.wait_for_timeout so Playwright keeps dispatching events.
    """

    def __init__(
        self,
        sleep: Callable[[float], None],
        *,
        dialog_render_ms: int = 1000,
        option_settle_ms: int = 300,
        dialog_close_ms: int = 1500,
    ):
        self._sleep = sleep
        self.dialog_render_ms = dialog_render_ms
        self.option_settle_ms = option_settle_ms
        self.dialog_close_ms = dialog_close_ms

    @classmethod
    def from_config(cls, sleep: Callable[[float], None], config: dict) -> "UiWaits":
        return cls(
            sleep,
            dialog_render_ms=config.get("dialog_render_ms", 1000),
            option_settle_ms=config.get("option_settle_ms", 300),
            dialog_close_ms=config.get("dialog_close_ms", 1500),
        )

    def wait_for_dialog_render(self) -> None:
        self._sleep(self.dialog_render_ms)

    def wait_for_option_settle(self) -> None:
        self._sleep(self.option_settle_ms)

    def wait_for_dialog_close(self) -> None:
        self._sleep(self.dialog_close_ms)


class ProcessingRun:
    """Lifecycle of one Processor invocation, with transition history."""

    def __init__(self, record: RowRecord):
        self.record = record
        self.stage = Stage.IDLE
        self.error_msg = ""
        self.started_at = time.time()
        self.history: list = []     # [(timestamp, stage, message), ...]

    def transition(self, new_stage: str, message: str = "") -> None:
        old = self.stage
        self.stage = new_stage
        if new_stage == Stage.FAILED:
            self.error_msg = message
        self.history.append((time.time(), new_stage, message or f"from {old}"))
        logger.debug(f"  {self}: {old} → {new_stage} {message}".rstrip())

    @property
    def stages(self) -> list:
        return [stage for _, stage, _ in self.history]

    @property
    def succeeded(self) -> bool:
        return self.stage == Stage.DONE

    @property
    def elapsed(self) -> float:
        end = self.history[-1][0] if self.history else time.time()
        return end - self.started_at

    def __repr__(self):
        return f"Run({self.record.identity}, {self.stage})"


def activate(control) -> None:
    """Dispatch a synthetic click, like element.click() in page script."""
    control.dispatch_event("click")


class Processor:
    def __init__(
        self,
        page,
        ledger: DedupLedger,
        state: ProcessingState,
        waits: UiWaits,
        *,
        submit_required: bool = False,
        diagnostics: bool = True,
    ):
        self._page = page
        self._ledger = ledger
        self._state = state
        self._waits = waits
        self._submit_required = submit_required
        self._diagnostics = diagnostics

    def process(self, record: RowRecord) -> ProcessingRun:
        """
        Run the full edit → No → submit → refocus sequence for *record*.

        The caller must already have marked record.identity in flight.
        Never raises: on any failure the identity is released back to
        retryable and the busy flag is cleared.
        """
        run = ProcessingRun(record)
        identity = record.identity

        if not self._state.acquire():
            logger.info(f"Already processing a row, skipping {identity}...")
            self._ledger.unmark(identity)
            run.transition(Stage.FAILED, "processor busy")
            return run

        logger.info(f"Processing row: {identity}")
        logger.info(f"  Reason:   {record.reason}")
        logger.info(f"  Attempts: {record.attempts}")

        pinned = None
        try:
            run.transition(Stage.INVOKING)
            if record.action_control is None:
                raise StepFailed("Edit button not found")
            pinned = pin_row(record)
            if pinned is None:
                raise StepFailed("row changed since the scan")
            logger.info("  Clicking Edit button")
            activate(pinned.action_control)
            self._waits.wait_for_dialog_render()

            run.transition(Stage.AWAITING_OPTION)
            self._select_no_option()

            run.transition(Stage.AWAITING_SUBMIT)
            self._waits.wait_for_option_settle()
            if not self._click_submit() and self._submit_required:
                raise StepFailed("Submit button not found")

            self._ledger.mark_completed(identity)
            logger.info(f"✅ Row {identity} processed successfully")

            run.transition(Stage.REFOCUSING)
            self._waits.wait_for_dialog_close()
            self._refocus_input()
            run.transition(Stage.DONE)
        except StepFailed as e:
            failed_at = run.stage
            logger.warning(f"❌ {identity}: {e} — row left for retry on next scan")
            self._ledger.unmark(identity)
            run.transition(Stage.FAILED, str(e))
            # Nothing was clicked yet when the Edit control is missing
            if failed_at != Stage.INVOKING:
                self._capture(f"step_failed_{identity}")
        except Exception as e:
            logger.exception(f"Error processing row {identity}: {e}")
            self._ledger.unmark(identity)
            run.transition(Stage.FAILED, str(e))
            self._capture(f"process_error_{identity}")
        finally:
            self._state.release()
            if pinned is not None:
                try:
                    release_row(pinned)
                except Exception as e:
                    logger.debug(f"  Could not release row handles: {e}")

        return run

    # ── Dialog steps ─────────────────────────────────────────────────

    def _select_no_option(self) -> None:
        group = self._page.locator(OPTION_GROUP)
        if group.count() == 0:
            raise StepFailed("Radio group not found")

        wrappers = group.first.locator(OPTION_WRAPPER).all()
        if len(wrappers) <= NO_OPTION_INDEX:
            raise StepFailed(f"Not enough radio buttons found ({len(wrappers)})")

        # Options are always rendered Yes, No
        no_wrapper = wrappers[NO_OPTION_INDEX]
        no_input = no_wrapper.locator(OPTION_INPUT)
        if no_input.count() == 0:
            raise StepFailed('"No" radio input not found')

        logger.info('  Clicking "No" radio button')
        activate(no_input.first)
        # The label click covers portals that bind the change on the wrapper
        activate(no_wrapper)

    def _click_submit(self) -> bool:
        footer = self._page.locator(DIALOG_FOOTER)
        if footer.count() == 0:
            logger.warning("  Modal footer not found")
            return False

        submit = footer.first.locator(SUBMIT_CONTROL)
        if submit.count() == 0:
            logger.warning("  Submit button not found")
            return False

        logger.info("  Clicking Submit button")
        activate(submit.first)
        return True

    def _refocus_input(self) -> bool:
        scan_input = self._page.locator(SCAN_INPUT)
        if scan_input.count() == 0:
            logger.warning("  Scan input not found — cannot refocus")
            return False

        field = scan_input.first
        field.focus()
        field.select_text()
        logger.info("  Input field refocused and ready for next scan")
        return True

    def _capture(self, label: str) -> None:
        if self._diagnostics:
            capture_diagnostics(self._page, label)
