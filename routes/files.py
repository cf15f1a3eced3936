"""
Spreadsheet file routes (``/api/files``).

Upload, listing, row data for chart building, metadata updates, deletion and
reprocessing of failed files.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Form, Query, UploadFile
from fastapi import File as FormFile
from pydantic import ValidationError
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from dependencies import get_current_user
from file_service import FileService
from models import FILE_STATUSES, User
from schemas import FileUpdate, UploadForm
from utils.result import Result

from .responses import respond, validation_failure

router = APIRouter(prefix="/files", tags=["Files"])


@router.post("/upload", status_code=201)
def upload_file(
    excel_file: Optional[UploadFile] = FormFile(default=None, alias="excelFile"),
    description: str = Form(default=""),
    tags: str = Form(default=""),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Upload an Excel workbook (multipart field ``excelFile``) and parse its first sheet.

    Returns:
        201 with the file summary; 400 for a missing, oversized or non-Excel file;
        422 (with the file id) when the workbook is stored but cannot be parsed.
    """
    try:
        form = UploadForm(description=description, tags=tags)
    except ValidationError as e:
        return validation_failure(e.errors(include_url=False))

    if excel_file is None:
        result = FileService.upload_file(db, user, None, None, None, form)
    else:
        result = FileService.upload_file(
            db, user, excel_file.file, excel_file.filename, excel_file.content_type, form
        )
    return respond(result)


@router.get("/")
def list_files(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=100),
    status: Optional[str] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The caller's files, newest first, with optional status filter."""
    if status is not None and status not in FILE_STATUSES:
        return respond(Result.invalid_input(f"Unknown status: {status}"))
    return respond(FileService.list_user_files(db, user, page, limit, status))


@router.get("/{file_id}")
def get_file(file_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return respond(FileService.get_file(db, user, file_id))


@router.get("/{file_id}/data")
def get_file_data(
    file_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_data_page_size, ge=1, le=1000),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Paginated rows of a processed file, for chart building."""
    return respond(FileService.get_file_data(db, user, file_id, page, limit))


@router.get("/{file_id}/sheets")
def get_file_sheets(file_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return respond(FileService.get_sheets(db, user, file_id))


@router.get("/{file_id}/sheets/{sheet_name}")
def get_sheet_preview(
    file_id: int,
    sheet_name: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Rows of another sheet of the workbook; not stored."""
    return respond(FileService.get_sheet_preview(db, user, file_id, sheet_name))


@router.put("/{file_id}")
def update_file(
    file_id: int,
    payload: FileUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return respond(FileService.update_file(db, user, file_id, payload))


@router.delete("/{file_id}")
def delete_file(file_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Delete a file, its stored workbook and every chart built from it."""
    return respond(FileService.delete_file(db, user, file_id))


@router.post("/{file_id}/reprocess")
def reprocess_file(file_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return respond(FileService.reprocess_file(db, user, file_id))
