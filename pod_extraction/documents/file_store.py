from pathlib import Path

from pod_extraction.database.models import DocumentRecord
from pod_extraction.documents.exceptions import FileReadError, UnsupportedStorageError

LOCAL_SCHEME = "local://"


def document_file_url(user_id: str, document_id: str) -> str:
    """Build the stored file URL: local://{user_id}/{document_id}.pdf"""
    return f"{LOCAL_SCHEME}{user_id}/{document_id}.pdf"


class FileStore:
    """Keeps uploaded PDFs on local disk until the worker reads them."""

    FILES_ROOT = Path("/app/files")

    def __init__(self, files_root: Path | None = None) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT

    def save(self, user_id: str, document_id: str, content: bytes) -> str:
        """Write document bytes to disk and return their file URL."""
        file_url = document_file_url(user_id, document_id)
        path = self._resolve_path(file_url)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return file_url

    def delete(self, file_url: str) -> None:
        self._resolve_path(file_url).unlink(missing_ok=True)

    def load(self, document: DocumentRecord) -> bytes:
        """Read document bytes from disk.

        Raises:
            FileNotFoundError: if the file does not exist at resolved path.
            UnsupportedStorageError: if file_url is not a local:// URL.
            FileReadError: if the file exists but cannot be read.
        """
        path = self._resolve_path(document.file_url)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FileReadError(f"Cannot read {path}: {exc}") from exc

    def _resolve_path(self, file_url: str) -> Path:
        if not file_url.startswith(LOCAL_SCHEME):
            raise UnsupportedStorageError(f"file_url '{file_url}' is not supported")
        relative = file_url[len(LOCAL_SCHEME):]
        path = (self._files_root / relative).resolve()
        if not path.is_relative_to(self._files_root.resolve()):
            raise UnsupportedStorageError(f"file_url '{file_url}' escapes the files root")
        return path
