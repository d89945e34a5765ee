"""
Session state shared by the Scanner and the Processor.

  DedupLedger     — identities already completed or currently in flight
  ProcessingState — the single busy flag guarding the Processor

Both live exactly as long as the monitored document; monitor.py resets
them when the page performs a full load.
"""

import logging

logger = logging.getLogger("lazada_autoproc")


class DedupLedger:
    """
    Track completed and in-flight row identities.

    Invariant: completed and in_flight never share an identity.
    """

    def __init__(self):
        self.completed: set[str] = set()
        self.in_flight: set[str] = set()

    def is_processable(self, identity: str) -> bool:
        return identity not in self.completed and identity not in self.in_flight

    def mark_in_flight(self, identity: str) -> None:
        if not self.is_processable(identity):
            raise ValueError(f"{identity} is already completed or in flight")
        self.in_flight.add(identity)

    def mark_completed(self, identity: str) -> None:
        """Move *identity* from in_flight to completed."""
        self.in_flight.discard(identity)
        self.completed.add(identity)

    def unmark(self, identity: str) -> None:
        """Release an in-flight identity so a later scan can retry it."""
        self.in_flight.discard(identity)

    def reset(self) -> None:
        self.completed.clear()
        self.in_flight.clear()

    def counts(self) -> dict:
        return {"completed": len(self.completed), "in_flight": len(self.in_flight)}

    def __repr__(self):
        return f"DedupLedger(completed={len(self.completed)}, in_flight={len(self.in_flight)})"


class ProcessingState:
    """Global busy flag: true for the duration of exactly one Processor run."""

    def __init__(self):
        self.busy = False

    def acquire(self) -> bool:
        """Set busy and return True, or return False if a run is active."""
        if self.busy:
            return False
        self.busy = True
        return True

    def release(self) -> None:
        self.busy = False
