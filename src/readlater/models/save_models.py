from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator


class ArticleSavingRequestStatus(str, Enum):
    """Lifecycle states of a save request."""

    PROCESSING = "PROCESSING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    DELETED = "DELETED"
    ARCHIVED = "ARCHIVED"
    CONTENT_NOT_FETCHED = "CONTENT_NOT_FETCHED"


class SaveErrorCode(str, Enum):
    UNKNOWN = "UNKNOWN"


class CreateLabelInput(BaseModel):
    """A label to attach to a saved page, created on first use."""

    name: str
    color: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("label name must not be empty")
        return value


class SaveUrlInput(BaseModel):
    """Request to save a single URL for the calling user."""

    url: str
    client_request_id: Optional[str] = None
    state: Optional[ArticleSavingRequestStatus] = None
    labels: Optional[List[CreateLabelInput]] = None
    source: str = "api"


class SaveSuccess(BaseModel):
    client_request_id: str
    url: str


class SaveError(BaseModel):
    error_codes: List[SaveErrorCode]


SaveResult = Union[SaveSuccess, SaveError]


class SaveRequestEvent(BaseModel):
    """Message published for the downstream page fetcher."""

    request_id: str
    user_id: str
    url: str
    labels: List[str] = Field(default_factory=list)
    state: Optional[ArticleSavingRequestStatus] = None
    priority: str = "high"
    source: str = "api"
    ts: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
