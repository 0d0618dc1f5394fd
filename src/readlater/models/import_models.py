"""Models shared by the bulk import readers."""

from dataclasses import dataclass
from typing import Awaitable, List, Optional, Protocol

from .save_models import ArticleSavingRequestStatus


class RowHandler(Protocol):
    """Callable invoked once per imported bookmark.

    Completing normally marks the row as imported; raising marks it failed.
    """

    def __call__(
        self,
        ctx: "ImportContext",
        url: str,
        state: Optional[ArticleSavingRequestStatus] = None,
        labels: Optional[List[str]] = None,
    ) -> Awaitable[None]:
        ...


@dataclass
class ImportRow:
    """One parsed record from a bulk bookmark file."""

    url: str
    state: Optional[ArticleSavingRequestStatus] = None
    labels: Optional[List[str]] = None


@dataclass
class RowOutcome:
    """Result of dispatching a single row to the handler."""

    url: str
    ok: bool
    error: Optional[str] = None


@dataclass
class ImportContext:
    """State for one import call. Counters only change through ``record``."""

    url_handler: RowHandler
    user_id: Optional[str] = None
    source: str = "csv-importer"
    count_imported: int = 0
    count_failed: int = 0

    def record(self, outcome: RowOutcome) -> None:
        if outcome.ok:
            self.count_imported += 1
        else:
            self.count_failed += 1

    @property
    def count_processed(self) -> int:
        return self.count_imported + self.count_failed
