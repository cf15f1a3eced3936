"""
Validation and on-disk storage of uploaded spreadsheets.
"""
import os
import time
import random
import logging
from typing import BinaryIO, Optional

from pydantic import BaseModel

from config import settings
from models import EXCEL_MIME_TYPES
from utils.result import Result

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".xls", ".xlsx")

CHUNK_SIZE = 1024 * 1024

INVALID_TYPE_MESSAGE = "Only Excel files (.xls, .xlsx) are allowed!"


class StoredUpload(BaseModel):
    """
    An uploaded spreadsheet written to the upload directory.

    Attributes:
        filename: Generated name on disk
        original_name: Name the client sent
        path: Absolute path of the stored file
        size: Size in bytes
        mimetype: Content type the client declared
    """
    filename: str
    original_name: str
    path: str
    size: int
    mimetype: str


def is_allowed_file(filename: Optional[str], content_type: Optional[str]) -> bool:
    """Both the extension and the declared MIME type must identify an Excel workbook."""
    if not filename:
        return False
    extension = os.path.splitext(filename)[1].lower()
    return extension in ALLOWED_EXTENSIONS and content_type in EXCEL_MIME_TYPES


def generate_stored_filename(original_name: str) -> str:
    """Unique name of the form excel-<epoch ms>-<random><ext>."""
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10 ** 9)}"
    extension = os.path.splitext(original_name)[1].lower()
    return f"excel-{unique_suffix}{extension}"


def save_upload(stream: BinaryIO, original_name: str, content_type: str) -> Result[StoredUpload]:
    """
    Stream an upload into the upload directory, enforcing the size cap.

    Args:
        stream: Readable binary file object
        original_name: Client-side file name
        content_type: Client-declared MIME type

    Returns:
        Result[StoredUpload] or a 400 failure when the file is too large
    """
    os.makedirs(settings.upload_dir, exist_ok=True)
    stored_name = generate_stored_filename(original_name)
    path = os.path.join(settings.upload_dir, stored_name)

    size = 0
    with open(path, "wb") as target:
        while True:
            chunk = stream.read(CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > settings.max_file_size:
                break
            target.write(chunk)

    if size > settings.max_file_size:
        os.remove(path)
        logger.warning(
            "Upload rejected: file too large",
            extra={"original_name": original_name, "max_file_size": settings.max_file_size}
        )
        return Result.invalid_input(f"File too large. Maximum size is {settings.max_file_size_label}.")

    logger.info("Stored upload", extra={"stored_name": stored_name, "original_name": original_name, "size": size})
    return Result.ok(StoredUpload(
        filename=stored_name,
        original_name=original_name,
        path=path,
        size=size,
        mimetype=content_type
    ))


def remove_stored_file(path: str) -> bool:
    """
    Delete a stored upload. A missing file is logged, not raised, so that
    record deletion can continue.

    Returns:
        True if a file was removed
    """
    try:
        os.remove(path)
        logger.info("Removed stored file", extra={"file_path": path})
        return True
    except OSError as e:
        logger.error("Error deleting physical file", extra={"file_path": path, "error": str(e)})
        return False


def directory_size(directory: str) -> int:
    """Total size in bytes of the regular files directly inside ``directory``."""
    if not os.path.isdir(directory):
        return 0
    total = 0
    for entry in os.scandir(directory):
        if entry.is_file():
            total += entry.stat().st_size
    return total
