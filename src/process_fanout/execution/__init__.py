from .capture import CapturePair, OutputCapture
from .types import ReapResult, Slot, SlotState, TerminationOutcome, classify_wait_status

__all__ = [
    "CapturePair",
    "OutputCapture",
    "ReapResult",
    "Slot",
    "SlotState",
    "TerminationOutcome",
    "classify_wait_status",
]
