from typing import Any

from psycopg.rows import dict_row

from pod_extraction.database.connection import get_connection
from pod_extraction.database.models import ExtractedPageRecord


class ExtractedPagesRepository:
    """Database operations for the extracted_page_data table.

    Rows are insert-only: the container lists are written and read back as
    text[] with positional NULLs preserved.
    """

    def insert(self, page: ExtractedPageRecord) -> ExtractedPageRecord:
        """Insert one page row and return it with its generated id."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    INSERT INTO extracted_page_data
                    (document_id, page_number, container_numbers, container_sizes,
                     full_empty_statuses, page_date, instruction_number,
                     vehicle_number, collected_from, delivered_to, unsure_fields)
                    VALUES (%s, %s, %s::text[], %s::text[], %s::text[],
                            %s, %s, %s, %s, %s, %s::text[])
                    RETURNING extracted_page_data_id, created_at
                    """,
                    (
                        page.document_id,
                        page.page_number,
                        list(page.container_numbers),
                        list(page.container_sizes),
                        list(page.full_empty_statuses),
                        page.page_date,
                        page.instruction_number,
                        page.vehicle_number,
                        page.collected_from,
                        page.delivered_to,
                        list(page.unsure_fields),
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        assert row is not None
        page.id = str(row["extracted_page_data_id"])
        page.created_at = row["created_at"]
        return page

    def list_by_document(self, document_id: str) -> list[ExtractedPageRecord]:
        """Return a document's page rows ordered by page number."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT extracted_page_data_id, document_id, page_number,
                           container_numbers, container_sizes, full_empty_statuses,
                           page_date, instruction_number, vehicle_number,
                           collected_from, delivered_to, unsure_fields, created_at
                    FROM extracted_page_data
                    WHERE document_id = %s
                    ORDER BY page_number
                    """,
                    (document_id,),
                )
                rows = cur.fetchall()
        return [self._to_record(row) for row in rows]

    @staticmethod
    def _to_record(row: dict[str, Any]) -> ExtractedPageRecord:
        return ExtractedPageRecord(
            id=str(row["extracted_page_data_id"]),
            document_id=str(row["document_id"]),
            page_number=row["page_number"],
            container_numbers=list(row["container_numbers"] or []),
            container_sizes=list(row["container_sizes"] or []),
            full_empty_statuses=list(row["full_empty_statuses"] or []),
            page_date=row["page_date"],
            instruction_number=row["instruction_number"],
            vehicle_number=row["vehicle_number"],
            collected_from=row["collected_from"],
            delivered_to=row["delivered_to"],
            unsure_fields=list(row["unsure_fields"] or []),
            created_at=row["created_at"],
        )
