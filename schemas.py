"""
Request and response schemas for the REST API.

Request models validate input (FastAPI turns their errors into a 400
"Validation failed" response); response models shape ORM records into the
JSON returned inside the ``data`` member of every successful response.
"""
import re
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from chart_builder import CHART_TYPES, DIMENSIONS
from models import Chart, File, User

MAX_TAG_LENGTH = 20
MAX_DESCRIPTION_LENGTH = 500

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def parse_tags(value: Union[str, List[str], None]) -> List[str]:
    """Accept a comma separated string or a list; drop blanks and surrounding whitespace."""
    if value is None:
        return []
    if isinstance(value, str):
        candidates = value.split(",")
    else:
        candidates = [tag for tag in value if isinstance(tag, str)]
    return [tag.strip() for tag in candidates if tag.strip()]


def _check_tags(value):
    if value is None:
        return value
    for tag in parse_tags(value):
        if len(tag) > MAX_TAG_LENGTH:
            raise ValueError(f"Each tag must be {MAX_TAG_LENGTH} characters or less")
    return value


# Requests

class AxisConfig(BaseModel):
    column: str = Field(..., min_length=1)
    label: Optional[str] = None
    data_type: Optional[Literal["string", "number", "date"]] = None


class ValueAxisConfig(AxisConfig):
    data_type: Optional[Literal["number"]] = None


class ColorsConfig(BaseModel):
    primary: Optional[str] = None
    secondary: Optional[str] = None
    palette: Optional[List[str]] = None


class OptionsConfig(BaseModel):
    responsive: Optional[bool] = None
    show_legend: Optional[bool] = None
    show_grid: Optional[bool] = None
    show_tooltip: Optional[bool] = None
    animation: Optional[bool] = None


class ChartConfigIn(BaseModel):
    x_axis: AxisConfig
    y_axis: ValueAxisConfig
    z_axis: Optional[ValueAxisConfig] = None
    colors: Optional[ColorsConfig] = None
    options: Optional[OptionsConfig] = None


class ChartConfigPatch(BaseModel):
    colors: Optional[ColorsConfig] = None
    options: Optional[OptionsConfig] = None


class ChartCreate(BaseModel):
    """
    Schema for creating a chart from a processed file.

    Attributes:
        title: 1 to 100 characters after trimming
        description: Optional, up to 500 characters
        chart_type: One of the supported chart types
        dimension: "2d" or "3d"
        file_id: Source file
        config: Axes, colors and display options
        tags: Free-form labels
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default="", max_length=MAX_DESCRIPTION_LENGTH)
    chart_type: str
    dimension: str
    file_id: int
    config: ChartConfigIn
    tags: List[str] = []

    @field_validator("chart_type")
    @classmethod
    def check_chart_type(cls, value):
        if value not in CHART_TYPES:
            raise ValueError("Invalid chart type")
        return value

    @field_validator("dimension")
    @classmethod
    def check_dimension(cls, value):
        if value not in DIMENSIONS:
            raise ValueError("Dimension must be either 2d or 3d")
        return value


class ChartUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)
    is_public: Optional[StrictBool] = None
    tags: Optional[List[str]] = None
    config: Optional[ChartConfigPatch] = None


class FileUpdate(BaseModel):
    description: Optional[str] = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)
    tags: Optional[Union[str, List[str]]] = None
    is_public: Optional[StrictBool] = None

    @field_validator("tags")
    @classmethod
    def check_tags(cls, value):
        return _check_tags(value)


class UploadForm(BaseModel):
    """Non-file fields of the multipart upload."""
    description: str = Field(default="", max_length=MAX_DESCRIPTION_LENGTH)
    tags: str = ""

    @field_validator("tags")
    @classmethod
    def check_tags(cls, value):
        return _check_tags(value)


class UserCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., max_length=255)
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    role: Literal["user", "admin"] = "user"

    @field_validator("email")
    @classmethod
    def check_email(cls, value):
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Please provide a valid email")
        return value.lower()


class RoleUpdate(BaseModel):
    role: Literal["user", "admin"]


class StatusUpdate(BaseModel):
    is_active: StrictBool


# Responses

class UserSummary(BaseModel):
    id: int
    username: str
    first_name: str
    last_name: str

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(id=user.id, username=user.username, first_name=user.first_name, last_name=user.last_name)


class UserOut(UserSummary):
    email: str
    role: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(
            id=user.id,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            role=user.role,
            is_active=user.is_active,
            created_at=user.created_at,
            updated_at=user.updated_at
        )


class ChartSummary(BaseModel):
    id: int
    title: str
    chart_type: str
    created_at: datetime


class FileSummary(BaseModel):
    id: int
    original_name: str
    filename: str
    description: str = ""


class FileOut(BaseModel):
    """File record without its row data."""
    id: int
    filename: str
    original_name: str
    size: int
    mimetype: str
    status: str
    description: str
    tags: List[str]
    is_public: bool
    headers: List[str]
    total_rows: int
    total_columns: int
    sheet_names: List[str]
    charts_count: int
    uploaded_by: UserSummary
    charts: List[ChartSummary]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_file(cls, file: File) -> "FileOut":
        processed = file.processed_data or {}
        metadata = file.file_metadata or {}
        return cls(
            id=file.id,
            filename=file.filename,
            original_name=file.original_name,
            size=file.size,
            mimetype=file.mimetype,
            status=file.status,
            description=file.description or "",
            tags=list(file.tags or []),
            is_public=file.is_public,
            headers=list(processed.get("headers", [])),
            total_rows=processed.get("total_rows", 0),
            total_columns=processed.get("total_columns", 0),
            sheet_names=list(metadata.get("sheet_names", [])),
            charts_count=file.charts_count,
            uploaded_by=UserSummary.from_user(file.owner),
            charts=[
                ChartSummary(id=chart.id, title=chart.title, chart_type=chart.chart_type, created_at=chart.created_at)
                for chart in file.charts
            ],
            created_at=file.created_at,
            updated_at=file.updated_at
        )


class FileDetail(FileOut):
    """File record including workbook metadata and column analysis."""
    metadata: Dict[str, Any]

    @classmethod
    def from_file(cls, file: File) -> "FileDetail":
        return cls(**FileOut.from_file(file).model_dump(), metadata=dict(file.file_metadata or {}))


class ChartOut(BaseModel):
    id: int
    title: str
    description: str
    chart_type: str
    dimension: str
    config: Dict[str, Any]
    chart_data: Dict[str, Any]
    is_public: bool
    views: int
    likes_count: int
    tags: List[str]
    chart_url: str
    created_by: UserSummary
    file: Optional[FileSummary] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_chart(cls, chart: Chart) -> "ChartOut":
        file = chart.file
        return cls(
            id=chart.id,
            title=chart.title,
            description=chart.description or "",
            chart_type=chart.chart_type,
            dimension=chart.dimension,
            config=dict(chart.config or {}),
            chart_data=dict(chart.chart_data or {}),
            is_public=chart.is_public,
            views=chart.views,
            likes_count=chart.likes_count,
            tags=list(chart.tags or []),
            chart_url=chart.chart_url,
            created_by=UserSummary.from_user(chart.creator),
            file=FileSummary(
                id=file.id,
                original_name=file.original_name,
                filename=file.filename,
                description=file.description or ""
            ) if file is not None else None,
            created_at=chart.created_at,
            updated_at=chart.updated_at
        )
