"""
Scanner: one read-only sweep over every results table on the page.

Selects at most one eligible row per pass and hands it to the Processor;
later eligible rows wait for the next pass, because two edit dialogs
cannot be driven at once.
"""

import logging

from lazada_autoproc.eligibility import is_eligible
from lazada_autoproc.ledger import DedupLedger, ProcessingState
from lazada_autoproc.processor import Processor
from lazada_autoproc.rows import RowRecord, extract_row

logger = logging.getLogger("lazada_autoproc")

TABLE_BODY = ".lazada-logistics-table-body tbody"
ROW_CLASS  = "lazada-logistics-table-row"
TABLE_ROW  = f"tr.{ROW_CLASS}"


class Scanner:
    def __init__(self, page, ledger: DedupLedger, state: ProcessingState, processor: Processor):
        self._page = page
        self._ledger = ledger
        self._state = state
        self._processor = processor
        self.passes = 0

    def scan(self) -> RowRecord | None:
        """
        Run one scan pass. Returns the record handed to the Processor,
        or None when nothing was selected.
        """
        if self._state.busy:
            logger.info("Already processing a row, skipping row check")
            return None

        self.passes += 1
        try:
            selected = self._select()
        except Exception as e:
            logger.error(f"Row check failed: {e}")
            return None

        if selected is None:
            logger.info("No matching rows found in any table")
            return None

        # Mark in flight BEFORE the processor starts waiting on the UI
        self._ledger.mark_in_flight(selected.identity)
        run = self._processor.process(selected)
        if run.succeeded:
            logger.info(f"{selected.identity} done in {run.elapsed:.1f}s")
        else:
            logger.info(f"{selected.identity} ended {run.stage} ({run.error_msg}); retryable on next scan")
        return selected

    def _select(self) -> RowRecord | None:
        table_bodies = self._page.locator(TABLE_BODY).all()
        logger.debug(f"Found {len(table_bodies)} table(s) on page")

        for table_idx, body in enumerate(table_bodies):
            rows = body.locator(TABLE_ROW).all()
            logger.debug(f"Table {table_idx}: found {len(rows)} rows")

            for row_idx, row in enumerate(rows):
                where = f"Table {table_idx}, Row {row_idx}"
                try:
                    record = extract_row(row)
                except Exception as e:
                    # Detached or re-rendering mid-read; the next pass sees it settled
                    logger.debug(f"{where}: extraction failed ({e}), skipping")
                    continue
                if record is None:
                    logger.debug(f"{where}: could not extract data")
                    continue

                if not self._ledger.is_processable(record.identity):
                    status = (
                        "already processed" if record.identity in self._ledger.completed
                        else "currently being processed"
                    )
                    logger.debug(f"{where}: {record.identity} {status}, skipping")
                    continue

                if not is_eligible(record.reason, record.attempts):
                    logger.debug(
                        f"{where}: conditions not met "
                        f"(reason: {record.reason!r}, attempts: {record.attempts})"
                    )
                    continue

                logger.info(f"🎯 Trigger condition met for {record.identity}")
                if not record.actionable:
                    logger.warning(f"❌ Edit button not found for {record.identity} — not actionable")
                    continue

                return record

        return None
