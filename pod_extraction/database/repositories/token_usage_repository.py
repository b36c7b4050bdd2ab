from typing import Any

from psycopg.rows import dict_row

from pod_extraction.database.connection import get_connection
from pod_extraction.database.models import TokenUsageRecord, TokenUsageSummary


class TokenUsageRepository:
    """Database operations for the document_token_usage table."""

    def insert(self, usage: TokenUsageRecord) -> TokenUsageRecord:
        """Append one usage row for a single model call."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    INSERT INTO document_token_usage
                    (document_id, request_id, page_number, input_tokens,
                     tool_use_prompt_tokens, cached_content_tokens, candidates_tokens,
                     thoughts_tokens, output_tokens, total_tokens, duration_ms)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING token_usage_id, created_at
                    """,
                    (
                        usage.document_id,
                        usage.request_id,
                        usage.page_number,
                        usage.input_tokens,
                        usage.tool_use_prompt_tokens,
                        usage.cached_content_tokens,
                        usage.candidates_tokens,
                        usage.thoughts_tokens,
                        usage.output_tokens,
                        usage.total_tokens,
                        usage.duration_ms,
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        assert row is not None
        usage.id = str(row["token_usage_id"])
        usage.created_at = row["created_at"]
        return usage

    def list_by_document(self, document_id: str) -> list[TokenUsageRecord]:
        """Return a document's usage rows in creation order."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT token_usage_id, document_id, request_id, page_number,
                           input_tokens, tool_use_prompt_tokens, cached_content_tokens,
                           candidates_tokens, thoughts_tokens, output_tokens,
                           total_tokens, duration_ms, created_at
                    FROM document_token_usage
                    WHERE document_id = %s
                    ORDER BY created_at, token_usage_id
                    """,
                    (document_id,),
                )
                rows = cur.fetchall()
        return [self._to_record(row) for row in rows]

    def summarize_by_document(self, document_id: str) -> TokenUsageSummary:
        """Sum every usage category over a document's model calls."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT COUNT(*) AS request_count,
                           COALESCE(SUM(input_tokens), 0) AS input_tokens,
                           COALESCE(SUM(tool_use_prompt_tokens), 0) AS tool_use_prompt_tokens,
                           COALESCE(SUM(cached_content_tokens), 0) AS cached_content_tokens,
                           COALESCE(SUM(candidates_tokens), 0) AS candidates_tokens,
                           COALESCE(SUM(thoughts_tokens), 0) AS thoughts_tokens,
                           COALESCE(SUM(output_tokens), 0) AS output_tokens,
                           COALESCE(SUM(total_tokens), 0) AS total_tokens,
                           COALESCE(SUM(duration_ms), 0) AS duration_ms
                    FROM document_token_usage
                    WHERE document_id = %s
                    """,
                    (document_id,),
                )
                row = cur.fetchone()

        assert row is not None
        return TokenUsageSummary(
            document_id=document_id,
            **{key: int(value) for key, value in row.items()},
        )

    @staticmethod
    def _to_record(row: dict[str, Any]) -> TokenUsageRecord:
        return TokenUsageRecord(
            id=str(row["token_usage_id"]),
            document_id=str(row["document_id"]),
            request_id=row["request_id"],
            page_number=row["page_number"],
            input_tokens=row["input_tokens"],
            tool_use_prompt_tokens=row["tool_use_prompt_tokens"],
            cached_content_tokens=row["cached_content_tokens"],
            candidates_tokens=row["candidates_tokens"],
            thoughts_tokens=row["thoughts_tokens"],
            output_tokens=row["output_tokens"],
            total_tokens=row["total_tokens"],
            duration_ms=row["duration_ms"],
            created_at=row["created_at"],
        )
