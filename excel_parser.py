import os
import re
import math
import logging
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from pydantic import BaseModel

from config import settings
from utils.log_context import LogContext, new_request_id
from utils.result import Result

logger = logging.getLogger(__name__)

ROW_INDEX_KEY = "_row_index"

# Order matters: on equal counts the later type wins the majority vote
TYPE_ORDER = ("string", "number", "date", "boolean", "null")

SAMPLE_SIZE = 5

# (pattern, strptime format); month comes first for the ambiguous forms
DATE_PATTERNS = (
    (re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$"), "%m/%d/%Y"),
    (re.compile(r"^\d{4}-\d{1,2}-\d{1,2}$"), "%Y-%m-%d"),
    (re.compile(r"^\d{1,2}-\d{1,2}-\d{4}$"), "%m-%d-%Y"),
    (re.compile(r"^\d{1,2}\.\d{1,2}\.\d{4}$"), "%m.%d.%Y"),
)

NUMBER_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

# integers above this lose precision as floats
MAX_SAFE_INTEGER = 2 ** 53


class SpreadsheetError(ValueError):
    """Raised for workbooks that are readable but unusable (no sheets, empty sheet, unknown sheet)."""


class ColumnStatistics(BaseModel):
    min: float
    max: float
    average: float
    sum: float


class ColumnAnalysis(BaseModel):
    """
    Inferred type and summary statistics of one spreadsheet column.

    Attributes:
        data_type: Majority type among non-empty values (string, number, date, boolean, null)
        total_values: Count of non-empty values
        unique_values: Count of distinct non-empty values
        null_count: Rows where the column is empty
        type_distribution: Count of values per type
        is_numeric: True when numbers outnumber strings
        is_date: True when at least one value is a date
        statistics: min/max/average/sum over the numeric values, None without numbers
        sample_values: First distinct values in row order
    """
    data_type: str
    total_values: int
    unique_values: int
    null_count: int
    type_distribution: Dict[str, int]
    is_numeric: bool
    is_date: bool
    statistics: Optional[ColumnStatistics] = None
    sample_values: List[Any] = []


class SheetData(BaseModel):
    """
    Rows of a single sheet keyed by cleaned header names.

    Attributes:
        sheet_name: Name of the parsed sheet
        headers: Cleaned, unique column headers
        rows: One mapping per non-empty data row, plus its "_row_index"
        total_rows: Number of data rows
        total_columns: Number of headers
    """
    sheet_name: str
    headers: List[str]
    rows: List[Dict[str, Any]]
    total_rows: int
    total_columns: int


class WorkbookMetadata(BaseModel):
    sheet_names: List[str]
    active_sheet: str
    total_sheets: int
    file_size: int
    column_analysis: Dict[str, ColumnAnalysis]


class ParsedWorkbook(SheetData):
    """First sheet of a workbook together with workbook-level metadata."""
    metadata: WorkbookMetadata


class FileInfo(BaseModel):
    file_name: str
    file_size: int
    sheet_names: List[str]
    total_sheets: int
    created: datetime
    modified: datetime


class ExcelParser:
    """
    Turns Excel workbooks into typed rows and per-column analysis.

    This class contains methods to:
    - Validate that an uploaded file is a usable workbook
    - Parse the first (or a named) sheet into typed row mappings
    - Infer column data types and numeric statistics
    - Describe a workbook without parsing its rows
    """

    @staticmethod
    def validate_excel_file(file_path: str) -> Result[int]:
        """
        Validates that the file exists, respects the size cap and contains at least one sheet.

        Args:
            file_path: Path to the Excel file

        Returns:
            Result containing the number of sheets, or a 400 failure describing the problem
        """
        if not file_path or not os.path.exists(file_path):
            logger.error("File not found", extra={"file_path": file_path})
            return Result.invalid_input("File not found")

        file_size = os.path.getsize(file_path)
        if file_size > settings.max_file_size:
            logger.warning(
                "File exceeds size limit",
                extra={"file_path": file_path, "file_size": file_size, "max_file_size": settings.max_file_size}
            )
            return Result.invalid_input(f"File size exceeds {settings.max_file_size_label} limit")

        try:
            sheet_names = ExcelParser._read_sheet_names(file_path)
        except Exception as e:
            logger.error(
                "Failed to open Excel file",
                extra={"file_path": file_path, "error": str(e), "error_type": type(e).__name__}
            )
            return Result.invalid_input(f"Invalid Excel file: {str(e)}")

        if not sheet_names:
            return Result.invalid_input("No sheets found in Excel file")

        return Result.ok(len(sheet_names))

    @staticmethod
    def parse_excel_file(file_path: str) -> Result[ParsedWorkbook]:
        """
        Parse the first sheet of a workbook and analyse its columns.

        Args:
            file_path: Path to the Excel file

        Returns:
            Result[ParsedWorkbook]: parsed rows and metadata, or a 422 failure
        """
        log_context = {"request_id": new_request_id(), "file_path": file_path}
        logger.info("Parsing Excel file", extra=log_context)

        try:
            if not os.path.exists(file_path):
                raise SpreadsheetError("File not found")

            with LogContext("workbook parsing", **log_context):
                sheet_names, frame = ExcelParser._read_sheet(file_path)
                active_sheet = sheet_names[0]
                sheet = ExcelParser._build_sheet(frame, active_sheet)

            with LogContext("column analysis", **log_context):
                column_analysis = ExcelParser.analyze_columns(sheet.headers, sheet.rows)

            metadata = WorkbookMetadata(
                sheet_names=sheet_names,
                active_sheet=active_sheet,
                total_sheets=len(sheet_names),
                file_size=os.path.getsize(file_path),
                column_analysis=column_analysis
            )
            parsed = ParsedWorkbook(**sheet.model_dump(), metadata=metadata)

            logger.info(
                f"Successfully parsed workbook with {parsed.total_rows} rows",
                extra={**log_context, "total_columns": parsed.total_columns}
            )
            return Result.ok(parsed)

        except SpreadsheetError as e:
            logger.warning(f"Workbook rejected: {str(e)}", extra=log_context)
            return Result.unprocessable(f"Failed to parse Excel file: {str(e)}")
        except Exception as e:
            logger.exception("Unexpected error during Excel parsing", extra={**log_context, "error": str(e)})
            return Result.unprocessable(f"Failed to parse Excel file: {str(e)}")

    @staticmethod
    def parse_specific_sheet(file_path: str, sheet_name: str) -> Result[SheetData]:
        """
        Parse a named sheet of the workbook.

        Args:
            file_path: Path to the Excel file
            sheet_name: Sheet to parse

        Returns:
            Result[SheetData]: rows of that sheet, 404 if the sheet does not exist, 422 otherwise
        """
        log_context = {"file_path": file_path, "sheet_name": sheet_name}
        try:
            with LogContext("sheet parsing", **log_context):
                sheet_names = ExcelParser._read_sheet_names(file_path)
                if sheet_name not in sheet_names:
                    logger.warning("Sheet not found in workbook", extra={**log_context, "sheet_names": sheet_names})
                    return Result.not_found(f"Sheet '{sheet_name}' not found")

                _, frame = ExcelParser._read_sheet(file_path, sheet_name)
                return Result.ok(ExcelParser._build_sheet(frame, sheet_name))

        except SpreadsheetError as e:
            return Result.unprocessable(f"Failed to parse sheet '{sheet_name}': {str(e)}")
        except Exception as e:
            logger.exception("Unexpected error during sheet parsing", extra={**log_context, "error": str(e)})
            return Result.unprocessable(f"Failed to parse sheet '{sheet_name}': {str(e)}")

    @staticmethod
    def get_file_info(file_path: str) -> Result[FileInfo]:
        """
        Describe a workbook: name, size, sheets and filesystem timestamps.
        """
        try:
            sheet_names = ExcelParser._read_sheet_names(file_path)
            stats = os.stat(file_path)
            return Result.ok(FileInfo(
                file_name=os.path.basename(file_path),
                file_size=stats.st_size,
                sheet_names=sheet_names,
                total_sheets=len(sheet_names),
                created=datetime.fromtimestamp(stats.st_ctime),
                modified=datetime.fromtimestamp(stats.st_mtime)
            ))
        except Exception as e:
            logger.error(
                "Failed to read workbook info",
                extra={"file_path": file_path, "error": str(e), "error_type": type(e).__name__}
            )
            return Result.unprocessable(f"Failed to get file info: {str(e)}")

    @staticmethod
    def analyze_columns(headers: List[str], rows: List[Dict[str, Any]]) -> Dict[str, ColumnAnalysis]:
        """
        Infer the data type of every column by majority vote and collect statistics.

        Args:
            headers: Column names
            rows: Typed row mappings as produced by the parser

        Returns:
            Dict mapping each header to its ColumnAnalysis
        """
        analysis = {}

        for header in headers:
            values = [row.get(header) for row in rows if not _is_empty(row.get(header))]
            types = {type_name: 0 for type_name in TYPE_ORDER}
            numbers = []
            seen = set()
            samples = []

            for value in values:
                value_type = _value_type(value)
                types[value_type] += 1
                if value_type == "number":
                    numbers.append(value)

                # bool and int compare equal, so the type is part of the key
                key = (value_type, value)
                if key not in seen:
                    seen.add(key)
                    if len(samples) < SAMPLE_SIZE:
                        samples.append(value)

            primary_type = TYPE_ORDER[0]
            for candidate in TYPE_ORDER[1:]:
                if types[candidate] >= types[primary_type]:
                    primary_type = candidate

            statistics = None
            if numbers:
                total = sum(numbers)
                statistics = ColumnStatistics(
                    min=min(numbers),
                    max=max(numbers),
                    average=total / len(numbers),
                    sum=total
                )

            analysis[header] = ColumnAnalysis(
                data_type=primary_type,
                total_values=len(values),
                unique_values=len(seen),
                null_count=len(rows) - len(values),
                type_distribution=types,
                is_numeric=types["number"] > types["string"] and types["number"] > 0,
                is_date=types["date"] > 0,
                statistics=statistics,
                sample_values=samples
            )

        return analysis

    @staticmethod
    def is_date_string(value: Any) -> bool:
        """Check whether a string matches one of the supported date layouts and is a real date."""
        return _parse_date_string(value) is not None

    @staticmethod
    def _read_sheet_names(file_path: str) -> List[str]:
        with pd.ExcelFile(file_path) as workbook:
            return [str(name) for name in workbook.sheet_names]

    @staticmethod
    def _read_sheet(file_path: str, sheet_name: Optional[str] = None) -> Tuple[List[str], pd.DataFrame]:
        """
        Read one sheet without header inference so that every cell keeps its raw value.

        Returns:
            (sheet_names, frame) where frame holds the sheet including its header row
        """
        with pd.ExcelFile(file_path) as workbook:
            sheet_names = [str(name) for name in workbook.sheet_names]
            if not sheet_names:
                raise SpreadsheetError("No sheets found in the Excel file")
            target = sheet_name if sheet_name is not None else workbook.sheet_names[0]
            frame = workbook.parse(target, header=None, dtype=object, keep_default_na=False, na_filter=False)
        return sheet_names, frame

    @staticmethod
    def _build_sheet(frame: pd.DataFrame, sheet_name: str) -> SheetData:
        """
        Convert a raw frame (header in the first row) into cleaned headers and typed rows.

        Raises:
            SpreadsheetError: If the sheet has no cells
        """
        if frame.empty:
            raise SpreadsheetError("The Excel sheet is empty")

        matrix = frame.values.tolist()
        headers = _clean_headers(matrix[0])

        rows = []
        for raw_row in matrix[1:]:
            cells = [_coerce_cell(cell) for cell in raw_row]
            if all(_is_empty(cell) for cell in cells):
                continue

            row = {header: (cells[index] if index < len(cells) else None) for index, header in enumerate(headers)}
            # +2: one for the header row, one for 1-based numbering
            row[ROW_INDEX_KEY] = len(rows) + 2
            rows.append(row)

        return SheetData(
            sheet_name=sheet_name,
            headers=headers,
            rows=rows,
            total_rows=len(rows),
            total_columns=len(headers)
        )


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _clean_headers(raw_headers: List[Any]) -> List[str]:
    headers = []
    # the row index key is reserved so a column cannot overwrite it
    used = {ROW_INDEX_KEY}
    for index, raw in enumerate(raw_headers):
        raw = _coerce_cell(raw)
        if _is_empty(raw):
            name = f"Column_{index + 1}"
        elif isinstance(raw, datetime):
            name = raw.date().isoformat() if raw.time() == time() else raw.isoformat()
        else:
            name = str(raw).strip() or f"Column_{index + 1}"

        if name in used:
            suffix = 2
            while f"{name}_{suffix}" in used:
                suffix += 1
            name = f"{name}_{suffix}"
        used.add(name)
        headers.append(name)
    return headers


def _coerce_cell(value: Any) -> Any:
    """Normalise a raw cell into None, bool, int, float, datetime or str."""
    if value is None:
        return None
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if not isinstance(value, str) and pd.isna(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        return float(value)
    if isinstance(value, str):
        if not value.strip():
            return None
        number = _parse_number(value)
        if number is not None:
            return number
        parsed_date = _parse_date_string(value)
        if parsed_date is not None:
            return parsed_date
        return value
    return str(value)


def _parse_number(text: str) -> Optional[Any]:
    candidate = text.strip()
    if not NUMBER_PATTERN.match(candidate):
        return None
    number = float(candidate)
    if math.isinf(number):
        return None
    if number.is_integer() and abs(number) < MAX_SAFE_INTEGER:
        return int(number)
    return number


def _parse_date_string(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    candidate = value.strip()
    for pattern, date_format in DATE_PATTERNS:
        if pattern.match(candidate):
            try:
                return datetime.strptime(candidate, date_format)
            except ValueError:
                return None
    return None


def _value_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, datetime):
        return "date"
    if isinstance(value, str):
        return "string"
    return "null"
