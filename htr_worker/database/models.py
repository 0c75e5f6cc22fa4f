from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PageState(str, Enum):
    SUBMITTED = "submitted"
    FINISHED = "finished"
    EXPIRED = "expired"


@dataclass
class PageRecord:
    """Represents a row from the pages table: one job submitted to Transkribus."""

    process_id: int
    htr_id: int
    uploaded: datetime
    pid: str | None = None
    in_progress: bool = True
    user: str | None = None
    downloaded: datetime | None = None

    @property
    def state(self) -> PageState:
        if self.in_progress:
            return PageState.SUBMITTED
        if self.downloaded is not None:
            return PageState.FINISHED
        return PageState.EXPIRED


@dataclass(frozen=True)
class PageTransition:
    """A terminal state change recorded during a poll pass, persisted later."""

    process_id: int
    state: PageState
    downloaded: datetime | None = None

    @classmethod
    def finished(cls, process_id: int, downloaded: datetime) -> "PageTransition":
        return cls(process_id=process_id, state=PageState.FINISHED, downloaded=downloaded)

    @classmethod
    def expired(cls, process_id: int) -> "PageTransition":
        return cls(process_id=process_id, state=PageState.EXPIRED)
