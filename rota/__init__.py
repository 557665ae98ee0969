"""School rota - timetable, substitution and duty roster engine."""

from .data import SchoolData, TimetableStore, load_school_data, save_school_data
from .errors import RotaError
from .cli import app as cli_app

__all__ = [
    # Data
    "SchoolData",
    "TimetableStore",
    "load_school_data",
    "save_school_data",
    # Errors
    "RotaError",
    # CLI
    "cli_app",
]
