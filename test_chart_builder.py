from http import HTTPStatus

import pytest

from chart_builder import (
    BACKGROUND_ALPHA,
    DEFAULT_CHART_PALETTE,
    DEFAULT_PALETTE,
    OPTION_FLAGS,
    PRIMARY_COLOR,
    ChartBuilder,
)


@pytest.fixture
def processed_data():
    """
    Fixture providing processed file data as stored on a completed file.

    Returns:
        dict: headers, rows and counts
    """
    rows = [
        {"Region": "North", "Revenue": 1200, "Units": 10, "_row_index": 2},
        {"Region": "South", "Revenue": None, "Units": 7, "_row_index": 3},
        {"Region": "East", "Revenue": 950, "Units": None, "_row_index": 4},
        {"Region": None, "Revenue": 400, "Units": 3, "_row_index": 5},
        {"Region": "West", "Revenue": 0, "Units": 5, "_row_index": 6},
    ]
    return {"headers": ["Region", "Revenue", "Units"], "rows": rows, "total_rows": len(rows), "total_columns": 3}


def bar_config(**overrides):
    config = {"x_axis": {"column": "Region"}, "y_axis": {"column": "Revenue"}}
    config.update(overrides)
    return config


class TestBuild:
    """
    Tests for ChartBuilder.build, which validates a request and produces the stored chart.
    """

    def test_bar_chart(self, processed_data):
        result = ChartBuilder.build(processed_data, bar_config(), "bar", "2d")

        assert result.is_success()
        chart_data = result.data["chart_data"]
        assert chart_data["labels"] == ["North", "East", "West"]
        dataset = chart_data["datasets"][0]
        assert dataset["label"] == "Revenue"
        assert dataset["data"] == [1200, 950, 0]
        assert dataset["border_width"] == 1
        assert dataset["fill"] is False

    def test_three_d_points_stay_aligned_with_labels(self, processed_data):
        """Rows missing the z value are skipped entirely."""
        config = bar_config(z_axis={"column": "Units"})

        result = ChartBuilder.build(processed_data, config, "scatter3d", "3d")

        chart_data = result.data["chart_data"]
        assert chart_data["labels"] == ["North", "West"]
        assert chart_data["datasets"][0]["data"] == [
            {"x": "North", "y": 1200, "z": 10},
            {"x": "West", "y": 0, "z": 5},
        ]
        assert result.data["config"]["z_axis"]["column"] == "Units"

    def test_z_axis_ignored_for_2d(self, processed_data):
        config = bar_config(z_axis={"column": "Missing"})

        result = ChartBuilder.build(processed_data, config, "bar", "2d")

        assert result.is_success()
        assert "z_axis" not in result.data["config"]

    @pytest.mark.parametrize(
        "config, message",
        [
            (bar_config(x_axis={"column": "Nope"}), "X-axis column 'Nope' not found in file"),
            (bar_config(y_axis={"column": "Profit"}), "Y-axis column 'Profit' not found in file"),
        ],
        ids=["missing-x", "missing-y"]
    )
    def test_unknown_columns(self, processed_data, config, message):
        result = ChartBuilder.build(processed_data, config, "line", "2d")

        assert result.status_code == HTTPStatus.BAD_REQUEST
        assert result.error == message

    def test_unknown_z_column_for_3d(self, processed_data):
        config = bar_config(z_axis={"column": "Depth"})

        result = ChartBuilder.build(processed_data, config, "bar3d", "3d")

        assert result.error == "Z-axis column 'Depth' not found in file"

    @pytest.mark.parametrize(
        "chart_type, dimension, message",
        [
            ("histogram", "2d", "Invalid chart type"),
            ("bar", "4d", "Dimension must be either 2d or 3d"),
            ("surface3d", "2d", "Chart type 'surface3d' requires the 3d dimension"),
        ],
        ids=["unknown-type", "unknown-dimension", "3d-type-as-2d"]
    )
    def test_invalid_chart_kind(self, processed_data, chart_type, dimension, message):
        result = ChartBuilder.build(processed_data, bar_config(), chart_type, dimension)

        assert result.is_failure()
        assert result.error == message


class TestNormalizeConfig:

    def test_defaults(self):
        config = ChartBuilder.normalize_config(bar_config(), "2d")

        assert config["x_axis"] == {"column": "Region", "label": "Region", "data_type": "string"}
        assert config["y_axis"] == {"column": "Revenue", "label": "Revenue", "data_type": "number"}
        assert config["colors"]["primary"] == PRIMARY_COLOR
        assert config["colors"]["palette"] == DEFAULT_CHART_PALETTE
        assert config["options"] == {flag: True for flag in OPTION_FLAGS}

    def test_explicit_values_are_kept(self):
        config = ChartBuilder.normalize_config(
            bar_config(
                x_axis={"column": "Region", "label": "Area", "data_type": "string"},
                colors={"palette": ["#000000"]},
                options={"show_legend": False, "animation": None},
            ),
            "2d"
        )

        assert config["x_axis"]["label"] == "Area"
        assert config["colors"]["palette"] == ["#000000"]
        assert config["options"]["show_legend"] is False
        assert config["options"]["animation"] is True


class TestGenerateChartData:

    @pytest.mark.parametrize(
        "chart_type, border_width, fill",
        [("line", 2, False), ("area", 1, True), ("pie", 1, False)],
        ids=["line", "area", "pie"]
    )
    def test_styling_per_chart_type(self, processed_data, chart_type, border_width, fill):
        config = ChartBuilder.normalize_config(bar_config(), "2d")

        dataset = ChartBuilder.generate_chart_data(processed_data, config, chart_type)["datasets"][0]

        assert dataset["border_width"] == border_width
        assert dataset["fill"] is fill

    def test_label_uses_y_axis_label(self, processed_data):
        config = ChartBuilder.normalize_config(bar_config(y_axis={"column": "Revenue", "label": "Sales ($)"}), "2d")

        dataset = ChartBuilder.generate_chart_data(processed_data, config, "bar")["datasets"][0]

        assert dataset["label"] == "Sales ($)"

    def test_no_rows(self):
        config = ChartBuilder.normalize_config(bar_config(), "2d")

        chart_data = ChartBuilder.generate_chart_data({"headers": ["Region", "Revenue"], "rows": []}, config, "bar")

        assert chart_data["labels"] == []
        assert chart_data["datasets"][0]["data"] == []
        assert chart_data["datasets"][0]["background_color"] == []


class TestGenerateColors:

    def test_cycles_default_palette(self):
        colors = ChartBuilder.generate_colors(12)

        assert colors["border"][:10] == DEFAULT_PALETTE
        assert colors["border"][10:] == DEFAULT_PALETTE[:2]
        assert colors["background"][0] == DEFAULT_PALETTE[0] + BACKGROUND_ALPHA

    def test_custom_palette(self):
        colors = ChartBuilder.generate_colors(3, {"palette": ["#111111", "#222222"]})

        assert colors == {
            "background": ["#11111180", "#22222280", "#11111180"],
            "border": ["#111111", "#222222", "#111111"],
        }

    def test_zero_count(self):
        assert ChartBuilder.generate_colors(0) == {"background": [], "border": []}
