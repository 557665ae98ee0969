"""Data model, dataset store and loading utilities."""

from .loader import load_school_data, validate_school_data, save_school_data
from .store import SchoolData, TimetableStore
from .history import SnapshotHistory, Outbox

__all__ = [
    # Loader
    "load_school_data",
    "validate_school_data",
    "save_school_data",
    # Store
    "SchoolData",
    "TimetableStore",
    # Boundary helpers
    "SnapshotHistory",
    "Outbox",
]
