"""Demo mode sets for modeflow."""

from modeflow.demo.travel import (
    TRAVEL_INITIAL_MODE,
    book_flight,
    build_travel_registry,
    orientation,
    policy_qa,
)

__all__ = [
    "TRAVEL_INITIAL_MODE",
    "book_flight",
    "build_travel_registry",
    "orientation",
    "policy_qa",
]
