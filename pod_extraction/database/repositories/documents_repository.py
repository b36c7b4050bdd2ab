from typing import Any

import psycopg
from psycopg.rows import dict_row

from pod_extraction.database.connection import get_connection
from pod_extraction.database.models import (
    DocumentRecord,
    ExtractionStatus,
    ExtractionStatusView,
)
from pod_extraction.documents.exceptions import (
    DocumentNotFoundError,
    ExtractionInProgressError,
)

_DOCUMENT_COLUMNS = """
    upload_document_id, user_id, instruction_number, document_name, file_url,
    file_size_in_bytes, company_id, branch_id, extraction_status, extraction_id,
    created_at, updated_at
"""


class DocumentsRepository:
    """Database operations for the upload_documents table."""

    def insert(self, conn: psycopg.Connection[Any], document: DocumentRecord) -> DocumentRecord:
        """Insert a new document inside the caller's transaction. Caller commits."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                INSERT INTO upload_documents
                (upload_document_id, user_id, instruction_number, document_name,
                 file_url, file_size_in_bytes, company_id, branch_id, extraction_status)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s::document_status)
                RETURNING {_DOCUMENT_COLUMNS}
                """,
                (
                    document.id,
                    document.user_id,
                    document.instruction_number,
                    document.document_name,
                    document.file_url,
                    document.file_size_in_bytes,
                    document.company_id,
                    document.branch_id,
                    ExtractionStatus.IDEAL.value,
                ),
            )
            row = cur.fetchone()
        assert row is not None
        return self._to_record(row)

    def find_by_id(self, document_id: str) -> DocumentRecord:
        """Find a document by ID.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_DOCUMENT_COLUMNS}
                    FROM upload_documents
                    WHERE upload_document_id = %s
                    """,
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return self._to_record(row)

    def find_extraction_status(self, document_id: str) -> ExtractionStatusView:
        """Return id, status and current run id of a document.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT upload_document_id, extraction_status, extraction_id
                    FROM upload_documents
                    WHERE upload_document_id = %s
                    """,
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return ExtractionStatusView(
            document_id=str(row["upload_document_id"]),
            status=ExtractionStatus(row["extraction_status"]),
            extraction_id=row["extraction_id"],
        )

    def list_documents(self, limit: int, offset: int) -> list[DocumentRecord]:
        """List documents, most recently created first."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_DOCUMENT_COLUMNS}
                    FROM upload_documents
                    ORDER BY created_at DESC, upload_document_id
                    LIMIT %s OFFSET %s
                    """,
                    (limit, offset),
                )
                rows = cur.fetchall()
        return [self._to_record(row) for row in rows]

    def list_by_user(self, user_id: str) -> list[DocumentRecord]:
        """List a user's documents, most recently created first."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_DOCUMENT_COLUMNS}
                    FROM upload_documents
                    WHERE user_id = %s
                    ORDER BY created_at DESC, upload_document_id
                    """,
                    (user_id,),
                )
                rows = cur.fetchall()
        return [self._to_record(row) for row in rows]

    def begin_extraction(
        self,
        document_id: str,
        run_id: str,
        takeover_run_id: str | None = None,
    ) -> None:
        """Move a document to PROCESSING under a new run id.

        The transition only happens when the document is not already
        PROCESSING, or when it is still owned by ``takeover_run_id``. Page rows
        from the previous attempt are removed in the same transaction.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
            ExtractionInProgressError: if another run owns the document.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE upload_documents
                    SET extraction_status = 'PROCESSING'::document_status,
                        extraction_id = %s,
                        updated_at = NOW()
                    WHERE upload_document_id = %s
                      AND (extraction_status <> 'PROCESSING'::document_status
                           OR extraction_id IS NOT DISTINCT FROM %s::varchar)
                    """,
                    (run_id, document_id, takeover_run_id),
                )
                if cur.rowcount == 0:
                    conn.rollback()
                    self._raise_transition_refused(cur, document_id)
                cur.execute(
                    "DELETE FROM extracted_page_data WHERE document_id = %s",
                    (document_id,),
                )
            conn.commit()

    def finish_extraction(
        self,
        document_id: str,
        run_id: str,
        status: ExtractionStatus,
    ) -> bool:
        """Set a terminal status if ``run_id`` still owns the document.

        Returns False when the run was superseded and nothing was written.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE upload_documents
                    SET extraction_status = %s::document_status, updated_at = NOW()
                    WHERE upload_document_id = %s
                      AND extraction_id = %s
                      AND extraction_status = 'PROCESSING'::document_status
                    """,
                    (status.value, document_id, run_id),
                )
                updated = cur.rowcount > 0
            conn.commit()
        return updated

    def fail_abandoned_run(
        self,
        conn: psycopg.Connection[Any],
        document_id: str,
        run_id: str,
    ) -> bool:
        """Flip a document left PROCESSING by a dead run to FAILED. Caller commits."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE upload_documents
                SET extraction_status = 'FAILED'::document_status, updated_at = NOW()
                WHERE upload_document_id = %s
                  AND extraction_id = %s
                  AND extraction_status = 'PROCESSING'::document_status
                """,
                (document_id, run_id),
            )
            return cur.rowcount > 0

    @staticmethod
    def _raise_transition_refused(cur: psycopg.Cursor[Any], document_id: str) -> None:
        cur.execute(
            "SELECT 1 FROM upload_documents WHERE upload_document_id = %s",
            (document_id,),
        )
        if cur.fetchone() is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        raise ExtractionInProgressError(
            f"Document {document_id} is already being processed"
        )

    @staticmethod
    def _to_record(row: dict[str, Any]) -> DocumentRecord:
        return DocumentRecord(
            id=str(row["upload_document_id"]),
            user_id=str(row["user_id"]),
            instruction_number=row["instruction_number"],
            document_name=row["document_name"],
            file_url=row["file_url"],
            file_size_in_bytes=row["file_size_in_bytes"],
            extraction_status=ExtractionStatus(row["extraction_status"]),
            extraction_id=row["extraction_id"],
            company_id=str(row["company_id"]) if row["company_id"] is not None else None,
            branch_id=str(row["branch_id"]) if row["branch_id"] is not None else None,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
