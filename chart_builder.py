"""
Chart configuration normalisation and projection of file rows into chart series.

The output follows the shape chart renderers expect: a list of ``labels`` and
one dataset holding the points plus per-point colours.
"""
import logging
from typing import Any, Dict, List, Optional

from utils.result import Result

logger = logging.getLogger(__name__)

CHART_TYPES = (
    "bar",
    "line",
    "pie",
    "doughnut",
    "scatter",
    "bubble",
    "area",
    "radar",
    "polarArea",
    "bar3d",
    "line3d",
    "scatter3d",
    "surface3d",
)

THREE_D_CHART_TYPES = ("bar3d", "line3d", "scatter3d", "surface3d")

DIMENSIONS = ("2d", "3d")

X_AXIS_DATA_TYPES = ("string", "number", "date")

PRIMARY_COLOR = "#3B82F6"
SECONDARY_COLOR = "#EF4444"

DEFAULT_PALETTE = [
    "#3B82F6", "#EF4444", "#10B981", "#F59E0B", "#8B5CF6",
    "#EC4899", "#06B6D4", "#84CC16", "#F97316", "#6366F1",
]

# palette stored on a chart when the request does not bring one
DEFAULT_CHART_PALETTE = DEFAULT_PALETTE[:5]

BACKGROUND_ALPHA = "80"

OPTION_FLAGS = ("responsive", "show_legend", "show_grid", "show_tooltip", "animation")

AXIS_NAMES = {"x_axis": "X-axis", "y_axis": "Y-axis", "z_axis": "Z-axis"}


class ChartBuilder:
    """
    Builds stored chart configuration and series data from a file's processed rows.
    """

    @staticmethod
    def build(
        processed_data: Dict[str, Any],
        config: Dict[str, Any],
        chart_type: str,
        dimension: str
    ) -> Result[Dict[str, Any]]:
        """
        Validate a chart request against the file and produce its stored form.

        Args:
            processed_data: The file's processed data (headers and rows)
            config: Requested chart configuration (axes, colors, options)
            chart_type: One of CHART_TYPES
            dimension: "2d" or "3d"

        Returns:
            Result with {"config": normalised config, "chart_data": labels and datasets},
            or a 400 failure naming the invalid chart type or missing column
        """
        return (
            ChartBuilder.validate_chart_kind(chart_type, dimension)
            .and_then(lambda _: ChartBuilder.validate_columns(processed_data.get("headers", []), config, dimension))
            .and_then(lambda _: ChartBuilder._assemble(processed_data, config, chart_type, dimension))
        )

    @staticmethod
    def validate_chart_kind(chart_type: str, dimension: str) -> Result[bool]:
        if chart_type not in CHART_TYPES:
            return Result.invalid_input("Invalid chart type")
        if dimension not in DIMENSIONS:
            return Result.invalid_input("Dimension must be either 2d or 3d")
        if chart_type in THREE_D_CHART_TYPES and dimension != "3d":
            return Result.invalid_input(f"Chart type '{chart_type}' requires the 3d dimension")
        return Result.ok(True)

    @staticmethod
    def validate_columns(headers: List[str], config: Dict[str, Any], dimension: str) -> Result[bool]:
        """
        Check that every axis column named by the config exists in the file.

        The z axis is only checked for 3d charts, and only when a column is given.
        """
        axes = ["x_axis", "y_axis"]
        if dimension == "3d" and _axis_column(config, "z_axis"):
            axes.append("z_axis")

        for axis in axes:
            column = _axis_column(config, axis)
            if not column:
                return Result.invalid_input(f"{AXIS_NAMES[axis]} column is required")
            if column not in headers:
                logger.warning(
                    "Chart axis column missing from file",
                    extra={"axis": axis, "column": column, "available_columns": headers}
                )
                return Result.invalid_input(f"{AXIS_NAMES[axis]} column '{column}' not found in file")

        return Result.ok(True)

    @staticmethod
    def normalize_config(config: Dict[str, Any], dimension: str) -> Dict[str, Any]:
        """
        Fill defaults: axis labels fall back to the column name, colors to the
        default palette, and every display option is on unless explicitly False.
        """
        x_axis = config.get("x_axis") or {}
        y_axis = config.get("y_axis") or {}
        z_axis = config.get("z_axis") or {}
        colors = config.get("colors") or {}
        options = config.get("options") or {}

        normalized = {
            "x_axis": _normalize_axis(x_axis, "string"),
            "y_axis": _normalize_axis(y_axis, "number"),
        }
        if dimension == "3d" and z_axis.get("column"):
            normalized["z_axis"] = _normalize_axis(z_axis, "number")

        normalized["colors"] = {
            "primary": colors.get("primary") or PRIMARY_COLOR,
            "secondary": colors.get("secondary") or SECONDARY_COLOR,
            "palette": list(colors.get("palette") or DEFAULT_CHART_PALETTE),
        }
        normalized["options"] = {flag: options.get(flag) is not False for flag in OPTION_FLAGS}
        return normalized

    @staticmethod
    def generate_chart_data(
        processed_data: Dict[str, Any],
        config: Dict[str, Any],
        chart_type: str
    ) -> Dict[str, Any]:
        """
        Project the configured columns of every row into labels and one dataset.

        Rows with an empty x or y value are skipped. When a z column is configured
        each point is {"x", "y", "z"} and rows with an empty z are skipped too, so
        labels and points always line up.

        Args:
            processed_data: The file's processed data
            config: Normalised chart configuration
            chart_type: Chart type, used for border width and area fill

        Returns:
            Dict with "labels" and "datasets"
        """
        rows = processed_data.get("rows", [])
        x_column = config["x_axis"]["column"]
        y_column = config["y_axis"]["column"]
        z_column = (config.get("z_axis") or {}).get("column")

        labels = []
        data_points = []
        for row in rows:
            x_value = row.get(x_column)
            y_value = row.get(y_column)
            if x_value is None or y_value is None:
                continue

            if z_column:
                z_value = row.get(z_column)
                if z_value is None:
                    continue
                data_points.append({"x": x_value, "y": y_value, "z": z_value})
            else:
                data_points.append(y_value)
            labels.append(x_value)

        colors = ChartBuilder.generate_colors(len(data_points), config.get("colors"))

        dataset = {
            "label": config["y_axis"].get("label") or y_column,
            "data": data_points,
            "background_color": colors["background"],
            "border_color": colors["border"],
            "border_width": 2 if chart_type == "line" else 1,
            "fill": chart_type == "area",
        }

        logger.debug(
            "Generated chart data",
            extra={"chart_type": chart_type, "points": len(data_points), "skipped_rows": len(rows) - len(data_points)}
        )
        return {"labels": labels, "datasets": [dataset]}

    @staticmethod
    def generate_colors(count: int, colors: Optional[Dict[str, Any]] = None) -> Dict[str, List[str]]:
        """Cycle through the palette: translucent background and solid border per point."""
        palette = (colors or {}).get("palette") or DEFAULT_PALETTE

        background = []
        border = []
        for index in range(count):
            color = palette[index % len(palette)]
            background.append(color + BACKGROUND_ALPHA)
            border.append(color)

        return {"background": background, "border": border}

    @staticmethod
    def _assemble(
        processed_data: Dict[str, Any],
        config: Dict[str, Any],
        chart_type: str,
        dimension: str
    ) -> Result[Dict[str, Any]]:
        normalized = ChartBuilder.normalize_config(config, dimension)
        chart_data = ChartBuilder.generate_chart_data(processed_data, normalized, chart_type)
        return Result.ok({"config": normalized, "chart_data": chart_data})


def _axis_column(config: Dict[str, Any], axis: str) -> Optional[str]:
    return (config.get(axis) or {}).get("column")


def _normalize_axis(axis: Dict[str, Any], default_type: str) -> Dict[str, Any]:
    return {
        "column": axis["column"],
        "label": axis.get("label") or axis["column"],
        "data_type": axis.get("data_type") or default_type,
    }
