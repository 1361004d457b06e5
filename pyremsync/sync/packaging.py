"""Packaging of source content into the archive format the device expects."""

import io
import json
import zipfile
from typing import Any

from ..utils import file_extension

# Defaults the device fills in itself once the document is opened
CONTENT_DEFAULTS: dict[str, Any] = {
    "extraMetadata": {},
    "lastOpenedPage": 0,
    "lineHeight": -1,
    "margins": 100,
    "pageCount": 0,
    "textScale": 1,
    "transform": {},
}


def content_metadata(file_type: str) -> dict[str, Any]:
    """Build the ``.content`` document for a file of the given type."""
    data = dict(CONTENT_DEFAULTS, fileType=file_type)
    return {key: data[key] for key in sorted(data)}


def build_document_archive(doc_id: str, file_name: str, content: bytes) -> bytes:
    """Package a document for upload.

    The archive holds three members named after the stable id: the original
    content under its extension, an empty ``.pagedata`` member and the
    ``.content`` metadata document.

    Args:
        doc_id: Stable id of the document
        file_name: Name of the resolved source file (gives the extension)
        content: Raw file content

    Returns:
        Zip archive bytes
    """
    extension = file_extension(file_name)
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(f"{doc_id}.{extension}", content)
        archive.writestr(f"{doc_id}.pagedata", "")
        archive.writestr(f"{doc_id}.content", json.dumps(content_metadata(extension)))
    return buffer.getvalue()


def build_folder_archive(doc_id: str) -> bytes:
    """Package a folder: a single ``.content`` member holding ``{}``."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(f"{doc_id}.content", json.dumps({}))
    return buffer.getvalue()
