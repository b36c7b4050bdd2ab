from typing import Any

import psycopg
from psycopg.rows import dict_row

from pod_extraction.database.connection import get_connection
from pod_extraction.database.models import JobRecord

_JOB_COLUMNS = """
    id, document_id, status, attempts, extraction_run_id, error_message,
    locked_at, heartbeat_at, created_at, updated_at
"""


class JobRepository:
    """Database operations for the extraction_jobs table.

    A claimed job holds a lease that the runner renews through heartbeat().
    Jobs whose lease expired are claimable again until max_attempts is reached.
    """

    def __init__(self, max_attempts: int, lease_seconds: int = 300) -> None:
        self._max_attempts = max_attempts
        self._lease_seconds = lease_seconds

    def enqueue(self, conn: psycopg.Connection[Any], document_id: str) -> JobRecord:
        """Insert a pending job inside the caller's transaction. Caller commits."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                INSERT INTO extraction_jobs (document_id, status, attempts)
                VALUES (%s, 'pending', 0)
                RETURNING {_JOB_COLUMNS}
                """,
                (document_id,),
            )
            row = cur.fetchone()
        assert row is not None
        return self._to_record(row)

    def claim_next_job(self, conn: psycopg.Connection[Any]) -> JobRecord | None:
        """Claim the next pending or stalled job using SELECT FOR UPDATE SKIP LOCKED.

        The returned record carries the run id of the previous attempt (if
        any) so the new run can take the document over.
        """
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT id, document_id, status, attempts, extraction_run_id
                FROM extraction_jobs
                WHERE attempts < %s
                  AND (status = 'pending'
                       OR (status = 'processing'
                           AND heartbeat_at < NOW() - make_interval(secs => %s)))
                ORDER BY created_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (self._max_attempts, self._lease_seconds),
            )
            row = cur.fetchone()

        if row is None:
            conn.commit()
            return None

        conn.execute(
            """
            UPDATE extraction_jobs
            SET status = 'processing', attempts = attempts + 1,
                locked_at = NOW(), heartbeat_at = NOW(), updated_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        conn.commit()

        return JobRecord(
            id=row["id"],
            document_id=str(row["document_id"]),
            status="processing",
            attempts=row["attempts"] + 1,
            extraction_run_id=row["extraction_run_id"],
        )

    def heartbeat(self, job_id: int, run_id: str) -> None:
        """Renew the lease and record the run currently working on the job."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE extraction_jobs
                SET heartbeat_at = NOW(), extraction_run_id = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (run_id, job_id),
            )
            conn.commit()

    def mark_done(self, job_id: int) -> None:
        """Mark a job as done."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE extraction_jobs
                SET status = 'done', locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (job_id,),
            )
            conn.commit()

    def mark_failed(self, job_id: int, error: str) -> None:
        """Mark a job as permanently failed."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE extraction_jobs
                SET status = 'failed', error_message = %s,
                    locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (error, job_id),
            )
            conn.commit()

    def fail_exhausted_stalled_jobs(self, conn: psycopg.Connection[Any]) -> list[JobRecord]:
        """Fail stalled jobs that have no attempts left and return them.

        Runs inside the caller's transaction so the caller can release the
        documents those jobs abandoned before committing.
        """
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                UPDATE extraction_jobs
                SET status = 'failed',
                    error_message = 'lease expired after final attempt',
                    locked_at = NULL, updated_at = NOW()
                WHERE status = 'processing'
                  AND attempts >= %s
                  AND heartbeat_at < NOW() - make_interval(secs => %s)
                RETURNING {_JOB_COLUMNS}
                """,
                (self._max_attempts, self._lease_seconds),
            )
            rows = cur.fetchall()
        return [self._to_record(row) for row in rows]

    def find_by_id(self, job_id: int) -> JobRecord | None:
        """Find a job by ID. Useful for tests."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_JOB_COLUMNS} FROM extraction_jobs WHERE id = %s",
                    (job_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return self._to_record(row)

    def find_latest_for_document(self, document_id: str) -> JobRecord | None:
        """Return the most recently created job for a document."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_JOB_COLUMNS}
                    FROM extraction_jobs
                    WHERE document_id = %s
                    ORDER BY created_at DESC, id DESC
                    LIMIT 1
                    """,
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return self._to_record(row)

    @staticmethod
    def _to_record(row: dict[str, Any]) -> JobRecord:
        return JobRecord(
            id=row["id"],
            document_id=str(row["document_id"]),
            status=row["status"],
            attempts=row["attempts"],
            extraction_run_id=row["extraction_run_id"],
            error_message=row["error_message"],
            locked_at=row["locked_at"],
            heartbeat_at=row["heartbeat_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
