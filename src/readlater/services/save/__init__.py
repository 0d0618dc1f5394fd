"""
Save Orchestrator

Stores save requests and publishes them for the page fetcher.
"""

from .context import SaveContext
from .labels import create_labels
from .page_save_request import (
    InvalidUrlError,
    SaveRequestError,
    clean_url,
    create_page_save_request,
)
from .orchestrator import save_url, save_url_from_email

__all__ = [
    "InvalidUrlError",
    "SaveContext",
    "SaveRequestError",
    "clean_url",
    "create_labels",
    "create_page_save_request",
    "save_url",
    "save_url_from_email",
]
