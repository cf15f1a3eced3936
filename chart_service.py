import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from chart_builder import ChartBuilder
from models import Chart, ChartLike, File, User
from schemas import ChartCreate, ChartOut, ChartUpdate
from utils.pagination import paginate
from utils.result import Result

logger = logging.getLogger(__name__)


class ChartService:
    """
    Use cases around charts built from processed files.
    """

    @staticmethod
    def create_chart(db: Session, user: User, payload: ChartCreate) -> Result[ChartOut]:
        """
        Create a chart from a file the caller owns, or from a public file.

        Args:
            db: Database session
            user: Creating user
            payload: Validated chart request

        Returns:
            Result[ChartOut] with 201, or 404/403/400 failures
        """
        source = db.get(File, payload.file_id)
        if source is None:
            return Result.not_found("File not found")
        if source.uploaded_by != user.id and not source.is_public:
            return Result.forbidden("Access denied to file")
        if source.status != "completed":
            return Result.invalid_input("Cannot create chart from file that is not fully processed")

        built = ChartBuilder.build(
            source.processed_data,
            payload.config.model_dump(exclude_none=True),
            payload.chart_type,
            payload.dimension
        )
        if built.is_failure():
            return built

        chart = Chart(
            title=payload.title,
            description=payload.description or "",
            chart_type=payload.chart_type,
            dimension=payload.dimension,
            file=source,
            creator=user,
            config=built.data["config"],
            chart_data=built.data["chart_data"],
            tags=[tag.strip() for tag in payload.tags if tag.strip()]
        )
        db.add(chart)
        db.commit()

        logger.info(
            "Chart created",
            extra={"chart_id": chart.id, "file_id": source.id, "user_id": user.id, "chart_type": chart.chart_type}
        )
        return Result.created(ChartOut.from_chart(chart))

    @staticmethod
    def list_charts(
        db: Session,
        user: Optional[User],
        page: int,
        limit: int,
        chart_type: Optional[str] = None,
        public: bool = False
    ) -> Result[Dict[str, Any]]:
        """
        Public charts (most viewed first) or the caller's own charts (newest first).
        """
        query = db.query(Chart)
        if chart_type:
            query = query.filter(Chart.chart_type == chart_type)

        if public:
            query = query.filter(Chart.is_public.is_(True)).order_by(
                Chart.views.desc(), Chart.created_at.desc(), Chart.id.desc()
            )
        elif user is not None:
            query = query.filter(Chart.created_by == user.id).order_by(Chart.created_at.desc(), Chart.id.desc())
        else:
            return Result.unauthorized("Authentication required for private charts")

        return Result.ok(ChartService.page_of_charts(query, page, limit))

    @staticmethod
    def get_chart(db: Session, user: Optional[User], chart_id: int) -> Result[ChartOut]:
        """Visible when public, owned by the caller, or the caller is an admin. Non-owner views are counted."""
        chart = db.get(Chart, chart_id)
        if chart is None:
            return Result.not_found("Chart not found")

        is_owner = user is not None and chart.created_by == user.id
        if not (chart.is_public or is_owner or (user is not None and user.is_admin)):
            return Result.forbidden()

        if not is_owner:
            chart.views = (chart.views or 0) + 1
            db.commit()

        return Result.ok(ChartOut.from_chart(chart))

    @staticmethod
    def update_chart(db: Session, user: User, chart_id: int, payload: ChartUpdate) -> Result[ChartOut]:
        """
        Owner-only update. Colors and options are merged into the stored config;
        a colour change regenerates the series colours.
        """
        chart = db.get(Chart, chart_id)
        if chart is None:
            return Result.not_found("Chart not found")
        if chart.created_by != user.id:
            return Result.forbidden()

        if payload.title is not None:
            chart.title = payload.title
        if payload.description is not None:
            chart.description = payload.description
        if payload.is_public is not None:
            chart.is_public = payload.is_public
        if payload.tags is not None:
            chart.tags = [tag.strip() for tag in payload.tags if tag.strip()]

        if payload.config is not None:
            config = dict(chart.config or {})
            if payload.config.colors is not None:
                config["colors"] = {**config.get("colors", {}), **payload.config.colors.model_dump(exclude_none=True)}
            if payload.config.options is not None:
                config["options"] = {**config.get("options", {}), **payload.config.options.model_dump(exclude_none=True)}
            chart.config = config

            if payload.config.colors is not None and chart.file.status == "completed":
                chart.chart_data = ChartBuilder.generate_chart_data(chart.file.processed_data, config, chart.chart_type)

        db.commit()
        logger.info("Chart updated", extra={"chart_id": chart.id, "user_id": user.id})
        return Result.ok(ChartOut.from_chart(chart))

    @staticmethod
    def delete_chart(db: Session, user: User, chart_id: int) -> Result[Dict[str, Any]]:
        chart = db.get(Chart, chart_id)
        if chart is None:
            return Result.not_found("Chart not found")
        if chart.created_by != user.id and not user.is_admin:
            return Result.forbidden()
        return Result.ok(ChartService.delete_record(db, chart))

    @staticmethod
    def toggle_like(db: Session, user: User, chart_id: int) -> Result[Dict[str, Any]]:
        """Like a public chart, or remove the caller's existing like."""
        chart = db.get(Chart, chart_id)
        if chart is None:
            return Result.not_found("Chart not found")
        if not chart.is_public:
            return Result.forbidden("Can only like public charts")

        existing = next((like for like in chart.likes if like.user_id == user.id), None)
        if existing is not None:
            chart.likes.remove(existing)
        else:
            chart.likes.append(ChartLike(user_id=user.id))
        db.commit()

        return Result.ok({
            "likes_count": chart.likes_count,
            "is_liked": chart.is_liked_by(user.id)
        })

    @staticmethod
    def page_of_charts(query, page: int, limit: int) -> Dict[str, Any]:
        charts, info = paginate(query, page, limit)
        return {"charts": [ChartOut.from_chart(chart) for chart in charts], **info}

    @staticmethod
    def delete_record(db: Session, chart: Chart) -> Dict[str, Any]:
        chart_id = chart.id
        db.delete(chart)
        db.commit()
        logger.info("Chart deleted", extra={"chart_id": chart_id})
        return {"id": chart_id}
