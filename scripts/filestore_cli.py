#!/usr/bin/env python
"""Upload and delete files against a configured storage profile."""

from __future__ import annotations

import argparse
import json
import logging
import mimetypes
from pathlib import Path

from filestore.core.storage.blob import BlobUploadMetadata
from filestore.files import FileStorage, FileStorageError, LoggingProgressSink, UploadRequest

logger = logging.getLogger(__name__)


def upload(args: argparse.Namespace) -> int:
    source = Path(args.file)
    content_type = args.content_type or mimetypes.guess_type(source.name)[0]

    storage = FileStorage.from_name(args.profile)
    request = UploadRequest(
        path=args.path,
        filename=args.filename or source.name,
        file=source,
        file_metadata=BlobUploadMetadata(content_type=content_type),
        db_path=args.db_path,
    )
    result = storage.upload(request, LoggingProgressSink(request.blob_path))
    print(json.dumps(result.to_dict(), indent=2, default=str))
    return 0


def delete(args: argparse.Namespace) -> int:
    storage = FileStorage.from_name(args.profile)
    result = storage.delete(args.path, db_path=args.db_path)
    print(json.dumps(result.to_dict(), indent=2))
    return 2 if result.partial else 0


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    parser = argparse.ArgumentParser(description="File storage command line")
    subparsers = parser.add_subparsers(dest="command", required=True)

    upload_parser = subparsers.add_parser("upload", help="Upload a local file")
    upload_parser.add_argument("profile", help="Storage profile name (e.g. local or local.images)")
    upload_parser.add_argument("file", help="Local file to upload")
    upload_parser.add_argument("--path", default="", help="Blob directory to upload into")
    upload_parser.add_argument("--filename", help="Blob file name (defaults to the local name)")
    upload_parser.add_argument("--db-path", help="Record path for the metadata record")
    upload_parser.add_argument("--content-type", help="Content type (guessed if omitted)")
    upload_parser.set_defaults(func=upload)

    delete_parser = subparsers.add_parser("delete", help="Delete a blob and its record")
    delete_parser.add_argument("profile", help="Storage profile name")
    delete_parser.add_argument("path", help="Blob path to delete")
    delete_parser.add_argument("--db-path", help="Record path of the metadata record")
    delete_parser.set_defaults(func=delete)

    args = parser.parse_args()
    try:
        return args.func(args)
    except FileStorageError as e:
        logger.error(f"{args.command} failed at {e.stage}: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
