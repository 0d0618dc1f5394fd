"""Row handlers that connect bulk imports to the save orchestrator."""

from typing import List, Optional

from ...models.db_models import User
from ...models.import_models import ImportContext, RowHandler
from ...models.save_models import (
    ArticleSavingRequestStatus,
    CreateLabelInput,
    SaveError,
    SaveUrlInput,
)
from ..save.context import SaveContext
from ..save.orchestrator import save_url


class ImportRowError(Exception):
    """Raised by a row handler to mark its row as failed."""

    pass


def make_save_url_handler(save_ctx: SaveContext, user: User) -> RowHandler:
    """Build a handler that saves every imported URL for ``user``."""

    async def handle(
        ctx: ImportContext,
        url: str,
        state: Optional[ArticleSavingRequestStatus] = None,
        labels: Optional[List[str]] = None,
    ) -> None:
        result = await save_url(
            save_ctx,
            user,
            SaveUrlInput(
                url=url,
                state=state,
                labels=[CreateLabelInput(name=name) for name in labels] if labels else None,
                source=ctx.source,
            ),
        )
        if isinstance(result, SaveError):
            codes = ", ".join(code.value for code in result.error_codes)
            raise ImportRowError(f"Failed to save {url}: {codes}")

    return handle
