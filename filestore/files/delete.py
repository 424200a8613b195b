"""Delete orchestration: remove a blob, then its metadata record."""

from __future__ import annotations

import logging

from filestore.core.storage.records import RecordNotFoundError, RecordStore
from filestore.core.storage.store import BlobStore
from filestore.files.errors import BlobDeleteFailedError, RecordDeleteFailedError
from filestore.files.models import DeleteRequest, DeleteResult

logger = logging.getLogger(__name__)


class FileDeleter:
    """Deletes a blob and its metadata record as one logical operation.

    The record is only touched after the blob delete succeeded. A record that
    is already gone counts as removed.
    """

    def __init__(self, blob_store: BlobStore, record_store: RecordStore | None = None):
        self._blob_store = blob_store
        self._record_store = record_store

    def delete(self, path: str, db_path: str | None = None) -> DeleteResult:
        """Delete the blob at ``path`` and the record at ``db_path``.

        Returns:
            Delete result; ``partial`` is True when the blob was deleted but
            removing the record failed

        Raises:
            BlobDeleteFailedError: If the blob could not be deleted
        """
        try:
            self._blob_store.delete(path)
        except Exception as e:
            logger.error(f"Failed to delete blob {path}: {e}")
            raise BlobDeleteFailedError(
                f"Failed to delete blob {path}: {e}", path=path, db_path=db_path, cause=e
            ) from e

        if not db_path:
            logger.info(f"Deleted {path}")
            return DeleteResult(path=path)

        if self._record_store is None:
            logger.warning(f"No record store configured, record {db_path} not removed")
            return DeleteResult(path=path)

        return self._remove_record(path, db_path)

    def delete_request(self, request: DeleteRequest) -> DeleteResult:
        return self.delete(request.path, request.db_path)

    def retry_record_delete(self, result: DeleteResult) -> DeleteResult:
        """Retry the record removal of a partial delete without touching the blob."""
        if not result.partial:
            return result
        return self._remove_record(result.path, result.db_path)

    def _remove_record(self, path: str, db_path: str) -> DeleteResult:
        try:
            self._record_store.remove(db_path)
        except RecordNotFoundError:
            logger.debug(f"Record {db_path} already absent")
        except Exception as e:
            logger.warning(f"Blob {path} deleted but record {db_path} was not removed: {e}")
            error = RecordDeleteFailedError(
                f"Failed to remove record {db_path}: {e}", path=path, db_path=db_path, cause=e
            )
            return DeleteResult(path=path, db_path=db_path, record_error=error)

        logger.info(f"Deleted {path} and record {db_path}")
        return DeleteResult(path=path, db_path=db_path)
