from dataclasses import dataclass, field

from htr_worker.database.models import PageTransition


@dataclass(frozen=True)
class RepositoryOptions:
    """Overrides for the Drupal site drush talks to; None falls back to settings."""

    root: str | None = None
    uri: str | None = None
    user: str | None = None


@dataclass(frozen=True)
class PageSelectionOptions(RepositoryOptions):
    """Pages are either the members of item ``pid`` or listed in ``pid_file``."""

    pid: str | None = None
    pid_file: str | None = None


@dataclass(frozen=True)
class UploadOptions(PageSelectionOptions):
    htr_id: int = 0
    overwrite: bool = False


@dataclass(frozen=True)
class SinglePageOptions:
    htr_id: int


@dataclass(frozen=True)
class SinglePageOcrOptions:
    pass


@dataclass
class UploadSummary:
    """Outcome of one upload pass."""

    submitted: list[int] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


@dataclass
class PollSummary:
    """Outcome of one poll pass over the in-progress pages."""

    finished: list[int] = field(default_factory=list)
    expired: list[int] = field(default_factory=list)
    running: list[int] = field(default_factory=list)
    transitions: list[PageTransition] = field(default_factory=list)
    # model id of each finished page, keyed by pid
    htr_ids: dict[str, int] = field(default_factory=dict)
