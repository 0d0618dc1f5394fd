"""Label resolution for saved pages."""

import logging
from typing import Dict, List

from ...db.repository import DEFAULT_LABEL_COLOR
from ...models.db_models import Label
from ...models.save_models import CreateLabelInput
from .context import SaveContext

logger = logging.getLogger(__name__)


async def create_labels(ctx: SaveContext, labels: List[CreateLabelInput]) -> List[Label]:
    """Find or create the named labels for ``ctx.uid``.

    Names are matched case-insensitively. The result follows the input order
    with duplicates collapsed.

    Args:
        ctx: Save context carrying the owner id and database
        labels: Labels requested by the caller

    Returns:
        List[Label]: One stored label per distinct requested name
    """
    requested: Dict[str, CreateLabelInput] = {}
    for label in labels:
        requested.setdefault(label.name.lower(), label)
    if not requested:
        return []

    existing = {
        label.name.lower(): label
        for label in await ctx.db.get_labels_by_names(ctx.uid, requested)
    }
    missing = [
        (label.name, label.color or DEFAULT_LABEL_COLOR, label.description)
        for key, label in requested.items()
        if key not in existing
    ]
    if missing:
        await ctx.db.insert_labels(ctx.uid, missing)
        logger.info("Created labels", extra={"user_id": ctx.uid, "count": len(missing)})
        existing.update(
            (label.name.lower(), label)
            for label in await ctx.db.get_labels_by_names(ctx.uid, [m[0] for m in missing])
        )

    return [existing[key] for key in requested]
