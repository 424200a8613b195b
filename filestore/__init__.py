"""File uploads with metadata records.

This package provides:
- Blob storage backends (local filesystem, MinIO) behind one adapter
- Record stores for upload metadata (filesystem JSON, MongoDB)
- Upload and delete orchestration with progress reporting
"""

__all__ = ["core", "files"]
