"""
Import Reader

Streams bulk bookmark files into per-row handler calls.
"""

from .csv_importer import (
    InvalidRowError,
    RecordError,
    import_csv,
    iter_records,
    parse_labels,
    parse_state,
)
from .handlers import ImportRowError, make_save_url_handler

__all__ = [
    "ImportRowError",
    "InvalidRowError",
    "RecordError",
    "import_csv",
    "iter_records",
    "make_save_url_handler",
    "parse_labels",
    "parse_state",
]
