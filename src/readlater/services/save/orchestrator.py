"""
Save orchestration: turns a URL into a stored save request plus a fetch event.
"""

import logging
from datetime import datetime, timezone

from ...models.db_models import User
from ...models.save_models import (
    ArticleSavingRequestStatus,
    SaveError,
    SaveErrorCode,
    SaveResult,
    SaveSuccess,
    SaveUrlInput,
)
from .context import SaveContext
from .labels import create_labels
from .page_save_request import create_page_save_request

logger = logging.getLogger(__name__)


def links_url(home_page_url: str, username: str, request_id: str) -> str:
    return f"{home_page_url.rstrip('/')}/{username}/links/{request_id}"


async def save_url(ctx: SaveContext, user: User, input: SaveUrlInput) -> SaveResult:
    """Save a URL for ``user``.

    Args:
        ctx: Save context; ``ctx.uid`` owns the request and its labels
        user: The owner, used to build the returned link
        input: URL, optional client request id, state and labels

    Returns:
        SaveResult: ``SaveSuccess`` with the request id and viewable link, or
        ``SaveError`` with ``UNKNOWN`` when anything fails. Never raises.
    """
    try:
        archived_at = (
            datetime.now(timezone.utc)
            if input.state == ArticleSavingRequestStatus.ARCHIVED
            else None
        )
        labels = await create_labels(ctx, input.labels) if input.labels else None

        save_request = await create_page_save_request(
            ctx,
            input.url,
            client_request_id=input.client_request_id,
            state=input.state,
            archived_at=archived_at,
            labels=labels,
            source=input.source,
            priority="low" if input.source == "csv-importer" else "high",
        )

        return SaveSuccess(
            client_request_id=save_request.id,
            url=links_url(ctx.home_page_url, user.username, save_request.id),
        )
    except Exception:
        logger.exception(
            "Error enqueuing save request",
            extra={"user_id": ctx.uid, "url": input.url, "source": input.source},
        )
        return SaveError(error_codes=[SaveErrorCode.UNKNOWN])


async def save_url_from_email(ctx: SaveContext, url: str, client_request_id: str) -> bool:
    """Save a URL that arrived by email on behalf of ``ctx.uid``.

    Returns:
        bool: True if the save request was stored and published
    """
    try:
        user = await ctx.db.get_user(ctx.uid)
    except Exception:
        logger.exception("Error looking up email save owner", extra={"user_id": ctx.uid})
        return False
    if user is None:
        logger.warning("Email save for unknown user", extra={"user_id": ctx.uid})
        return False

    result = await save_url(
        ctx,
        user,
        SaveUrlInput(url=url, client_request_id=client_request_id, source="email"),
    )
    return not isinstance(result, SaveError)
