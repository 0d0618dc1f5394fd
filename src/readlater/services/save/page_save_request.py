"""Creation of persisted page save requests."""

import logging
import uuid
from datetime import datetime
from typing import List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ...models.db_models import Label, SaveRequest
from ...models.save_models import ArticleSavingRequestStatus, SaveRequestEvent
from .context import SaveContext

logger = logging.getLogger(__name__)

TRACKING_PARAM_PREFIX = "utm_"


class SaveRequestError(Exception):
    """Base exception for save request errors."""

    pass


class InvalidUrlError(SaveRequestError):
    """Raised when the URL to save is not an absolute http(s) URL."""

    pass


def clean_url(url: str) -> str:
    """Normalise a URL for saving.

    Strips surrounding whitespace and ``utm_*`` query parameters.

    Raises:
        InvalidUrlError: If the URL is not an absolute http(s) URL
    """
    try:
        parts = urlsplit(url.strip())
    except ValueError as e:
        raise InvalidUrlError(f"Invalid url: {url!r}") from e
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        raise InvalidUrlError(f"Invalid url: {url!r}")
    params = parse_qsl(parts.query, keep_blank_values=True)
    kept = [
        (key, value)
        for key, value in params
        if not key.lower().startswith(TRACKING_PARAM_PREFIX)
    ]
    # Only re-encode the query when something was dropped.
    query = urlencode(kept) if len(kept) != len(params) else parts.query
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc, parts.path, query, parts.fragment)
    )


async def create_page_save_request(
    ctx: SaveContext,
    url: str,
    *,
    client_request_id: Optional[str] = None,
    state: Optional[ArticleSavingRequestStatus] = None,
    archived_at: Optional[datetime] = None,
    labels: Optional[List[Label]] = None,
    source: str = "api",
    priority: str = "high",
) -> SaveRequest:
    """Persist a save request for ``ctx.uid`` and publish it for fetching.

    A request already stored for (owner, client_request_id) is returned as is
    and its event is published again.
    """
    cleaned = clean_url(url)
    client_request_id = client_request_id or str(uuid.uuid4())
    labels = labels or []

    save_request, created = await ctx.db.upsert_save_request(
        ctx.uid,
        client_request_id,
        cleaned,
        archived_at=archived_at.isoformat() if archived_at else None,
        source=source,
        label_ids=[label.id for label in labels],
    )
    if not created:
        logger.info(
            "Save request already exists",
            extra={"request_id": save_request.id, "client_request_id": client_request_id},
        )

    event = SaveRequestEvent(
        request_id=save_request.id,
        user_id=ctx.uid,
        url=save_request.url,
        labels=[label.name for label in save_request.labels],
        state=state,
        priority=priority,
        source=source,
    )
    await ctx.publisher.publish(event)
    return save_request
