import os
import uuid
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from pod_extraction.config.settings import Settings
from pod_extraction.database import connection
from pod_extraction.database.connection import close_pool, get_connection, init_pool
from pod_extraction.database.models import DocumentRecord, ExtractionStatus
from pod_extraction.documents.file_store import FileStore, document_file_url

USER_ID = "5d7e3c2a-1111-4a4a-8b8b-222233334444"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "pod_extraction_test")
    return Settings(extraction_provider="example")


def _apply_schema() -> None:
    schema = (Path(connection.__file__).parent / "schema.sql").read_text(encoding="utf-8")
    with get_connection() as conn:
        conn.execute(schema)
        conn.commit()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        _apply_schema()
    except Exception as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    """Connection to a freshly emptied test database."""
    with get_connection() as conn:
        conn.execute("TRUNCATE upload_documents CASCADE")
        conn.commit()
        yield conn


@pytest.fixture
def files_root(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def seed_document(
    db_conn: psycopg.Connection[Any],
    files_root: Path,
) -> Callable[..., DocumentRecord]:
    """Factory inserting an upload_documents row, optionally with a PDF on disk."""

    def _seed(
        content: bytes | None = None,
        status: ExtractionStatus = ExtractionStatus.IDEAL,
        extraction_id: str | None = None,
        created_at: str | None = None,
    ) -> DocumentRecord:
        document_id = str(uuid.uuid4())
        if content is None:
            file_url = document_file_url(USER_ID, document_id)
        else:
            file_url = FileStore(files_root=files_root).save(USER_ID, document_id, content)
        with db_conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO upload_documents
                (upload_document_id, user_id, instruction_number, document_name,
                 file_url, file_size_in_bytes, extraction_status, extraction_id,
                 created_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s::document_status, %s,
                        COALESCE(%s::timestamp, now()))
                """,
                (
                    document_id,
                    USER_ID,
                    "INS-001",
                    "receipt.pdf",
                    file_url,
                    len(content or b""),
                    status.value,
                    extraction_id,
                    created_at,
                ),
            )
        db_conn.commit()
        return DocumentRecord(
            id=document_id,
            user_id=USER_ID,
            instruction_number="INS-001",
            document_name="receipt.pdf",
            file_url=file_url,
            file_size_in_bytes=len(content or b""),
            extraction_status=status,
            extraction_id=extraction_id,
        )

    return _seed
