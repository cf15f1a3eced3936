import math
import logging
from typing import Any, BinaryIO, Dict, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from excel_parser import ExcelParser, ParsedWorkbook
from models import File, User, empty_processed_data
from schemas import FileDetail, FileOut, FileUpdate, UploadForm, parse_tags
from upload import INVALID_TYPE_MESSAGE, is_allowed_file, remove_stored_file, save_upload
from utils.log_context import new_request_id
from utils.pagination import paginate
from utils.result import Result

logger = logging.getLogger(__name__)


class FileService:
    """
    Use cases around uploaded spreadsheet files.

    Every method returns a Result whose status code is what the API answers with:
    - 400 for invalid input or a file in the wrong state
    - 403 when the caller may not touch the file
    - 404 for unknown files
    - 422 when a stored workbook cannot be parsed
    """

    @staticmethod
    def upload_file(
        db: Session,
        user: User,
        stream: Optional[BinaryIO],
        original_name: Optional[str],
        content_type: Optional[str],
        form: UploadForm
    ) -> Result[Dict[str, Any]]:
        """
        Store, validate and parse an uploaded workbook.

        Args:
            db: Database session
            user: Uploading user
            stream: Binary content of the upload
            original_name: Client-side file name
            content_type: Client-declared MIME type
            form: Description and comma separated tags

        Returns:
            Result with the upload summary (201), or a failure. A workbook that
            cannot be parsed is kept with status "failed" and answered with 422.
        """
        log_context = {"request_id": new_request_id(), "user_id": user.id, "original_name": original_name}
        logger.info("Processing file upload", extra=log_context)

        if stream is None or not original_name:
            return Result.invalid_input("No file uploaded. Please select an Excel file (.xls or .xlsx)")

        if not is_allowed_file(original_name, content_type):
            logger.warning("Upload rejected: not an Excel file", extra={**log_context, "content_type": content_type})
            return Result.invalid_input(INVALID_TYPE_MESSAGE)

        stored_result = save_upload(stream, original_name, content_type)
        if stored_result.is_failure():
            return stored_result
        stored = stored_result.data

        validation = ExcelParser.validate_excel_file(stored.path)
        if validation.is_failure():
            logger.warning(f"Workbook validation failed: {validation.error}", extra=log_context)
            remove_stored_file(stored.path)
            return validation

        try:
            record = File(
                filename=stored.filename,
                original_name=stored.original_name,
                path=stored.path,
                size=stored.size,
                mimetype=stored.mimetype,
                owner=user,
                status="processing",
                processed_data=empty_processed_data(),
                file_metadata={},
                description=form.description.strip(),
                tags=parse_tags(form.tags)
            )
            db.add(record)
            db.commit()
        except Exception as e:
            db.rollback()
            remove_stored_file(stored.path)
            logger.exception("Unexpected error while saving file record", extra={**log_context, "error": str(e)})
            return Result.server_error("Server error during file upload")

        parse_result = FileService._apply_parse(db, record)
        if parse_result.is_failure():
            return Result.unprocessable(parse_result.error, details={"file_id": record.id})

        logger.info("File uploaded and processed", extra={**log_context, "file_id": record.id})
        return Result.created(FileService._upload_summary(record))

    @staticmethod
    def list_user_files(
        db: Session, user: User, page: int, limit: int, status: Optional[str] = None
    ) -> Result[Dict[str, Any]]:
        """Caller's files, newest first, optionally filtered by processing status."""
        query = db.query(File).filter(File.uploaded_by == user.id)
        if status:
            query = query.filter(File.status == status)
        return Result.ok(FileService.page_of_files(query, page, limit))

    @staticmethod
    def get_file(db: Session, user: User, file_id: int) -> Result[FileDetail]:
        found = FileService._load(db, file_id)
        if found.is_failure():
            return found

        record = found.data
        if record.uploaded_by != user.id and not user.is_admin:
            return Result.forbidden()
        return Result.ok(FileDetail.from_file(record))

    @staticmethod
    def get_file_data(db: Session, user: User, file_id: int, page: int, limit: int) -> Result[Dict[str, Any]]:
        """
        One page of a processed file's rows for chart building.

        Readable by the owner, by admins and by anyone when the file is public.
        """
        readable = FileService._load_readable(db, user, file_id)
        if readable.is_failure():
            return readable

        record = readable.data
        if record.status != "completed":
            return Result.invalid_input("File is still being processed or failed to process")

        processed = record.processed_data or empty_processed_data()
        total_rows = processed.get("total_rows", 0)
        start = (page - 1) * limit
        end = start + limit

        return Result.ok({
            "data": {
                "headers": processed.get("headers", []),
                "rows": processed.get("rows", [])[start:end],
                "total_rows": total_rows,
                "total_columns": processed.get("total_columns", 0),
                "current_page": page,
                "total_pages": math.ceil(total_rows / limit),
                "has_more": end < total_rows
            },
            "metadata": record.file_metadata or {}
        })

    @staticmethod
    def get_sheets(db: Session, user: User, file_id: int) -> Result[Dict[str, Any]]:
        readable = FileService._load_readable(db, user, file_id)
        if readable.is_failure():
            return readable
        return ExcelParser.get_file_info(readable.data.path).and_then(
            lambda info: Result.ok(jsonable_encoder(info))
        )

    @staticmethod
    def get_sheet_preview(db: Session, user: User, file_id: int, sheet_name: str) -> Result[Dict[str, Any]]:
        """Parse another sheet of the stored workbook without persisting it."""
        readable = FileService._load_readable(db, user, file_id)
        if readable.is_failure():
            return readable
        return ExcelParser.parse_specific_sheet(readable.data.path, sheet_name).and_then(
            lambda sheet: Result.ok(jsonable_encoder(sheet))
        )

    @staticmethod
    def update_file(db: Session, user: User, file_id: int, payload: FileUpdate) -> Result[Dict[str, Any]]:
        found = FileService._load(db, file_id)
        if found.is_failure():
            return found

        record = found.data
        if record.uploaded_by != user.id:
            return Result.forbidden()

        if payload.description is not None:
            record.description = payload.description.strip()
        if payload.tags is not None:
            record.tags = parse_tags(payload.tags)
        if payload.is_public is not None:
            record.is_public = payload.is_public
        db.commit()

        logger.info("File updated", extra={"file_id": record.id, "user_id": user.id})
        return Result.ok({
            "id": record.id,
            "description": record.description,
            "tags": record.tags,
            "is_public": record.is_public,
            "updated_at": record.updated_at
        })

    @staticmethod
    def delete_file(db: Session, user: User, file_id: int) -> Result[Dict[str, Any]]:
        """Owner or admin; removes the stored workbook and every chart built from it."""
        found = FileService._load(db, file_id)
        if found.is_failure():
            return found

        record = found.data
        if record.uploaded_by != user.id and not user.is_admin:
            return Result.forbidden()
        return Result.ok(FileService.delete_record(db, record))

    @staticmethod
    def reprocess_file(db: Session, user: User, file_id: int) -> Result[Dict[str, Any]]:
        """Parse a previously failed file again."""
        found = FileService._load(db, file_id)
        if found.is_failure():
            return found

        record = found.data
        if record.uploaded_by != user.id:
            return Result.forbidden()
        if record.status != "failed":
            return Result.invalid_input("File can only be reprocessed if it failed")

        record.status = "processing"
        db.commit()

        parse_result = FileService._apply_parse(db, record)
        if parse_result.is_failure():
            return Result.unprocessable(
                f"Failed to reprocess Excel file: {parse_result.error}",
                details={"file_id": record.id}
            )

        processed = record.processed_data
        return Result.ok({
            "id": record.id,
            "status": record.status,
            "headers": processed["headers"],
            "total_rows": processed["total_rows"],
            "total_columns": processed["total_columns"]
        })

    @staticmethod
    def page_of_files(query, page: int, limit: int) -> Dict[str, Any]:
        files, info = paginate(query.order_by(File.created_at.desc(), File.id.desc()), page, limit)
        return {"files": [FileOut.from_file(record) for record in files], **info}

    @staticmethod
    def delete_record(db: Session, record: File) -> Dict[str, Any]:
        """Delete a file record, its stored workbook and (by cascade) its charts."""
        file_id = record.id
        deleted_charts = record.charts_count
        # a missing workbook on disk must not block the record deletion
        remove_stored_file(record.path)
        db.delete(record)
        db.commit()
        logger.info("File deleted", extra={"file_id": file_id, "deleted_charts": deleted_charts})
        return {"id": file_id, "deleted_charts": deleted_charts}

    @staticmethod
    def _apply_parse(db: Session, record: File) -> Result[ParsedWorkbook]:
        parsed = ExcelParser.parse_excel_file(record.path)
        if parsed.is_failure():
            record.status = "failed"
            db.commit()
            logger.warning(f"Marked file as failed: {parsed.error}", extra={"file_id": record.id})
            return parsed

        workbook = parsed.data
        record.processed_data = jsonable_encoder({
            "headers": workbook.headers,
            "rows": workbook.rows,
            "total_rows": workbook.total_rows,
            "total_columns": workbook.total_columns
        })
        record.file_metadata = jsonable_encoder(workbook.metadata)
        record.status = "completed"
        db.commit()
        return parsed

    @staticmethod
    def _load(db: Session, file_id: int) -> Result[File]:
        record = db.get(File, file_id)
        if record is None:
            return Result.not_found("File not found")
        return Result.ok(record)

    @staticmethod
    def _load_readable(db: Session, user: Optional[User], file_id: int) -> Result[File]:
        found = FileService._load(db, file_id)
        if found.is_failure():
            return found

        record = found.data
        if not can_read_file(record, user):
            return Result.forbidden()
        return found

    @staticmethod
    def _upload_summary(record: File) -> Dict[str, Any]:
        processed = record.processed_data
        return {
            "id": record.id,
            "filename": record.filename,
            "original_name": record.original_name,
            "size": record.size,
            "status": record.status,
            "headers": processed["headers"],
            "total_rows": processed["total_rows"],
            "total_columns": processed["total_columns"],
            "sheet_names": record.file_metadata.get("sheet_names", []),
            "description": record.description,
            "tags": record.tags,
            "uploaded_at": record.created_at
        }


def can_read_file(record: File, user: Optional[User]) -> bool:
    if record.is_public:
        return True
    if user is None:
        return False
    return record.uploaded_by == user.id or user.is_admin
