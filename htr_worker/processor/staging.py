import shutil
import tempfile
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from htr_worker.logging.logger import Log
from htr_worker.processor.exceptions import UnexpectedStagingContentError


class StagingArea:
    """Scratch directories owned by one processor run.

    Every directory name carries the run id, so concurrent runs never share a
    path. A directory exists only inside its ``directory`` block and is removed
    on every way out of it.
    """

    PREFIX = "transkribus_process"

    def __init__(self, root: Path | None = None, run_id: uuid.UUID | None = None) -> None:
        self.root = root if root is not None else Path(tempfile.gettempdir())
        self.run_id = run_id if run_id is not None else uuid.uuid4()

    def path(self, label: str) -> Path:
        return self.root / f"{self.PREFIX}_{label}_{self.run_id.hex}"

    @contextmanager
    def directory(self, label: str) -> Iterator[Path]:
        path = self.path(label)
        path.mkdir(parents=True, exist_ok=True)
        try:
            yield path
        finally:
            remove_directory(path)


def remove_directory(path: Path) -> None:
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    else:
        Log.debug(f"Removed staging directory {path}")


def single_file(directory: Path) -> Path:
    """The only file in a directory."""
    files = [path for path in directory.iterdir() if path.is_file()]
    if len(files) != 1:
        raise UnexpectedStagingContentError(
            f"Expected exactly one file in {directory}, found {len(files)}"
        )
    return files[0]
