"""
Row extraction: turn one rendered results-table row into a RowRecord.

Columns are read by fixed position (the portal's table layout is assumed
stable); the row's Edit control is found by label text because its index
among the action buttons varies.

Locators from a scan pass are positional (tbody.nth > tr.nth > ...) and
re-resolve on every use. Before anything is clicked, pin_row() binds the
record to the row's current DOM node and re-checks its identity, so a row
inserted above it cannot redirect the click onto another shipment.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable, Optional

from lazada_autoproc.utils import parse_leading_int

logger = logging.getLogger("lazada_autoproc")

MIN_CELLS = 11

COL_IDENTITY = 0
COL_ATTEMPTS = 5
COL_REASON   = 6

_CELL    = "td"
_CONTROL = "button"

ACTION_LABEL = "Edit"

# Short: a row that vanished since the scan should fail fast, not stall the loop
PIN_TIMEOUT_MS = 2000


@dataclass(frozen=True)
class RowRecord:
    """One shipment row as seen during a single scan pass."""
    identity: str
    reason: str
    attempts: int
    action_control: Optional[Any] = field(default=None, compare=False, repr=False)
    source: Optional[Any] = field(default=None, compare=False, repr=False)

    @property
    def actionable(self) -> bool:
        return self.action_control is not None


def _text(node) -> str:
    return (node.text_content() or "").strip()


def _is_action_label(label: str) -> bool:
    return ACTION_LABEL in label


def find_control(labels: Iterable[str], predicate: Callable[[str], bool]) -> int | None:
    """Index of the last label satisfying *predicate*, or None."""
    found = None
    for idx, label in enumerate(labels):
        label = (label or "").strip()
        logger.debug(f"    control {idx}: {label!r}")
        if predicate(label):
            found = idx
    return found


def resolve_control(candidates: Iterable, predicate: Callable[[str], bool]):
    """
    Return the candidate whose visible label satisfies *predicate*.

    Every candidate is inspected; when several match, the last one in
    document order wins.
    """
    candidates = list(candidates)
    idx = find_control((_text(control) for control in candidates), predicate)
    return None if idx is None else candidates[idx]


def extract_row(row) -> RowRecord | None:
    """
    Extract a RowRecord from a table row locator.

    Returns None for rows with fewer than MIN_CELLS cells — these are
    partially rendered rows seen mid re-render and are simply skipped.

    Cell texts are read in one snapshot (all_text_contents does not wait),
    so a row detached mid-read raises at once instead of timing out.
    """
    cells = row.locator(_CELL)
    texts = [(text or "").strip() for text in cells.all_text_contents()]
    if len(texts) < MIN_CELLS:
        logger.debug(f"  Row has {len(texts)} cells (< {MIN_CELLS}) — skipped")
        return None

    identity = texts[COL_IDENTITY]
    reason = texts[COL_REASON]
    attempts = parse_leading_int(texts[COL_ATTEMPTS])

    controls = cells.nth(len(texts) - 1).locator(_CONTROL)
    control_idx = find_control(controls.all_text_contents(), _is_action_label)
    action_control = None if control_idx is None else controls.nth(control_idx)

    logger.debug(
        f"  Extracted — tracking: {identity}, reason: {reason!r}, "
        f"attempts: {attempts}, edit control: {action_control is not None}"
    )
    return RowRecord(
        identity=identity,
        reason=reason,
        attempts=attempts,
        action_control=action_control,
        source=row,
    )


def pin_row(record: RowRecord) -> RowRecord | None:
    """
    Bind *record* to the DOM node currently at its row position.

    Returns a copy whose source and action_control are element handles
    taken from that node, or None when the node no longer shows
    record.identity or has lost its Edit control. Pass the result to
    release_row() when done.
    """
    row = record.source.element_handle(timeout=PIN_TIMEOUT_MS)
    cells = row.query_selector_all(_CELL)
    current = _text(cells[COL_IDENTITY]) if len(cells) >= MIN_CELLS else ""
    if current != record.identity:
        logger.warning(f"  Row moved: expected {record.identity}, found {current or 'nothing'}")
        row.dispose()
        return None

    control = resolve_control(cells[-1].query_selector_all(_CONTROL), _is_action_label)
    if control is None:
        row.dispose()
        return None

    return replace(record, action_control=control, source=row)


def release_row(pinned: RowRecord) -> None:
    """Dispose the element handles held by a pinned record."""
    for handle in (pinned.action_control, pinned.source):
        if handle is not None:
            handle.dispose()
