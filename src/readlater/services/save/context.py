from dataclasses import dataclass

from ...db.repository import ReadLaterDatabase
from ...rabbitmq_utils import SaveRequestPublisher


@dataclass
class SaveContext:
    """Collaborators for one save call, scoped to the owner ``uid``."""

    db: ReadLaterDatabase
    publisher: SaveRequestPublisher
    uid: str
    home_page_url: str
