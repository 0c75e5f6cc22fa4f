"""Wrapper around the drush Islandora Datastream CRUD commands."""

from dataclasses import dataclass
from pathlib import Path

from htr_worker.logging.logger import Log
from htr_worker.tools.runner import run_tool


@dataclass(frozen=True)
class RepositoryTarget:
    """The Drupal site drush talks to."""

    root: str
    user: str
    uri: str


def member_of_query(item_pid: str) -> str:
    """Solr query matching the pages that belong to an item."""
    escaped_pid = item_pid.replace(":", "\\:")
    return f"RELS_EXT_isMemberOf_uri_ms:info\\:fedora/{escaped_pid}"


class DatastreamCrud:
    def __init__(self, drush_command: str = "drush") -> None:
        self._drush = drush_command

    def fetch_page_pids(self, target: RepositoryTarget, item_pid: str, pid_file: Path) -> None:
        """Write the pids of an item's pages into pid_file."""
        Log.info(f"Getting page PIDs from {item_pid}...")
        run_tool(
            [
                *self._common(target),
                "idcrudfp",
                f"--solr_query={member_of_query(item_pid)}",
                f"--pid_file={pid_file}",
            ]
        )

    def fetch_datastreams(
        self,
        target: RepositoryTarget,
        pid_file: Path,
        directory: Path,
        dsid: str,
    ) -> None:
        """Download the given datastream of every pid in pid_file into directory."""
        Log.info(f"Fetching {dsid} datastreams...")
        run_tool(
            [
                *self._common(target),
                "idcrudfd",
                "-y",
                f"--pid_file={pid_file}",
                f"--datastreams_directory={directory}",
                f"--dsid={dsid}",
            ]
        )

    def push_datastreams(self, target: RepositoryTarget, directory: Path) -> None:
        """Publish every file in directory as a datastream, keyed by file name."""
        Log.info(f"Pushing datastreams from {directory.name} to Islandora...")
        run_tool(
            [
                *self._common(target),
                "idcrudpd",
                f"--datastreams_source_directory={directory}",
            ]
        )

    def _common(self, target: RepositoryTarget) -> list[str]:
        return [
            self._drush,
            f"--root={target.root}",
            f"--user={target.user}",
            f"--uri={target.uri}",
        ]
