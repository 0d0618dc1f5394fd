"""
Data models and schemas for the read-later service.
"""

from .db_models import Label, SaveRequest, User
from .import_models import ImportContext, ImportRow, RowHandler, RowOutcome
from .save_models import (
    ArticleSavingRequestStatus,
    CreateLabelInput,
    SaveError,
    SaveErrorCode,
    SaveRequestEvent,
    SaveResult,
    SaveSuccess,
    SaveUrlInput,
)

__all__ = [
    "ArticleSavingRequestStatus",
    "CreateLabelInput",
    "ImportContext",
    "ImportRow",
    "Label",
    "RowHandler",
    "RowOutcome",
    "SaveError",
    "SaveErrorCode",
    "SaveRequest",
    "SaveRequestEvent",
    "SaveResult",
    "SaveSuccess",
    "SaveUrlInput",
    "User",
]
