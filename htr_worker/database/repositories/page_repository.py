from collections.abc import Iterable
from typing import Any

from psycopg.rows import dict_row

from htr_worker.database.connection import get_connection
from htr_worker.database.models import PageRecord, PageState, PageTransition
from htr_worker.logging.logger import Log

_COLUMNS = "process_id, pid, htr_id, in_progress, user_name, uploaded, downloaded"


def _to_record(row: dict[str, Any]) -> PageRecord:
    return PageRecord(
        process_id=row["process_id"],
        pid=row["pid"],
        htr_id=row["htr_id"],
        in_progress=row["in_progress"],
        user=row["user_name"],
        uploaded=row["uploaded"],
        downloaded=row["downloaded"],
    )


class PageRepository:
    """Database operations for the pages table.

    Rows are only ever inserted or moved once from in progress to a terminal
    state; nothing here deletes a page.
    """

    def add(self, page: PageRecord) -> None:
        """Insert a freshly submitted page."""
        if page.in_progress and page.downloaded is not None:
            raise ValueError("An in-progress page cannot have a download timestamp")
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO pages
                    (process_id, pid, htr_id, in_progress, user_name, uploaded, downloaded)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    page.process_id,
                    page.pid,
                    page.htr_id,
                    page.in_progress,
                    page.user,
                    page.uploaded,
                    page.downloaded,
                ),
            )
            conn.commit()

    def find_by_process_id(self, process_id: int) -> PageRecord | None:
        rows = self._select("WHERE process_id = %s", (process_id,))
        return rows[0] if rows else None

    def find_by_pid(self, pid: str) -> list[PageRecord]:
        """All pages ever submitted for a pid, oldest first."""
        return self._select("WHERE pid = %s ORDER BY uploaded", (pid,))

    def find_live_by_pid(self, pid: str) -> list[PageRecord]:
        """Pages for a pid that are still processing or were already downloaded."""
        return self._select(
            "WHERE pid = %s AND (in_progress OR downloaded IS NOT NULL) ORDER BY uploaded",
            (pid,),
        )

    def find_in_progress(self) -> list[PageRecord]:
        """Repository-backed pages still waiting on Transkribus, oldest first."""
        return self._select(
            "WHERE in_progress AND pid IS NOT NULL ORDER BY uploaded", ()
        )

    def has_in_progress(self) -> bool:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT EXISTS (SELECT 1 FROM pages WHERE in_progress AND pid IS NOT NULL)"
                )
                row = cur.fetchone()
        return bool(row and row[0])

    def apply_transitions(self, transitions: Iterable[PageTransition]) -> int:
        """Persist terminal transitions in one transaction.

        Each update only matches a row that is still in progress, so a page that
        another run already finished or expired is left untouched.

        Returns:
            Number of pages that actually changed state.
        """
        transitions = list(transitions)
        if not transitions:
            return 0
        applied = 0
        with get_connection() as conn:
            with conn.cursor() as cur:
                for transition in transitions:
                    if transition.state is PageState.SUBMITTED:
                        raise ValueError("Pages cannot transition back to submitted")
                    downloaded = (
                        transition.downloaded
                        if transition.state is PageState.FINISHED
                        else None
                    )
                    cur.execute(
                        """
                        UPDATE pages
                        SET in_progress = FALSE, downloaded = %s
                        WHERE process_id = %s AND in_progress
                        """,
                        (downloaded, transition.process_id),
                    )
                    if cur.rowcount == 0:
                        Log.warning(
                            f"Page with process {transition.process_id} is not in progress, "
                            f"skipping transition to {transition.state.value}"
                        )
                        continue
                    applied += 1
            conn.commit()
        return applied

    def _select(self, where: str, params: tuple[Any, ...]) -> list[PageRecord]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM pages {where}", params)
                rows = cur.fetchall()
        return [_to_record(row) for row in rows]
