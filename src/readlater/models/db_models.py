"""Database models for the read-later application."""

from dataclasses import dataclass, field
from typing import List, Optional

from .save_models import ArticleSavingRequestStatus


@dataclass
class User:
    """Model representing an account that owns saved pages."""

    id: str
    username: str
    email: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class Label:
    """Model representing a user-defined tag."""

    id: str
    user_id: str
    name: str
    color: str
    description: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class SaveRequest:
    """Model representing a persisted intent to fetch a page for a user."""

    id: str
    user_id: str
    client_request_id: str
    url: str
    status: ArticleSavingRequestStatus = ArticleSavingRequestStatus.PROCESSING
    archived_at: Optional[str] = None
    source: Optional[str] = None
    created_at: Optional[str] = None
    labels: List[Label] = field(default_factory=list)
