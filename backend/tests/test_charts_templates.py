from __future__ import annotations

from pathlib import Path
import sys

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from datadesk.charts import build_chart, prepare_chart_data, prepare_histogram_data, prepare_scatter_data
from datadesk.errors import ValidationError
from datadesk.models import ChartConfig
from datadesk.profiling import profile_dataset
from datadesk.query_context import QueryContext
from datadesk.templates import build_templates


SALES = [
    {"region": "north", "product": "pen", "date": "2024-01-01", "amount": 10},
    {"region": "south", "product": "ink", "date": "2024-01-02", "amount": 25},
    {"region": "north", "product": "pad", "date": "2024-01-03", "amount": 5},
    {"region": "east", "product": "pen", "date": "2024-01-04", "amount": 120},
    {"region": None, "product": "ink", "date": "2024-01-05", "amount": "n/a"},
]


def test_category_counts_sorted_desc() -> None:
    data = prepare_chart_data(SALES, "region")
    assert data == [
        {"name": "north", "value": 2},
        {"name": "south", "value": 1},
        {"name": "east", "value": 1},
        {"name": "Unknown", "value": 1},
    ]


def test_category_sum_and_avg() -> None:
    assert prepare_chart_data(SALES, "product", "amount", "sum")[0] == {"name": "pen", "value": 130}
    avg = {p["name"]: p["value"] for p in prepare_chart_data(SALES, "product", "amount", "avg")}
    assert avg == {"pen": 65, "ink": 25, "pad": 5}


def test_category_limit() -> None:
    rows = [{"k": str(i)} for i in range(30)]
    assert len(prepare_chart_data(rows, "k", limit=20)) == 20


def test_scatter_drops_non_numeric_pairs() -> None:
    points = prepare_scatter_data(SALES, "amount", "amount")
    assert len(points) == 4
    assert points[0] == {"x": 10, "y": 10}
    assert len(prepare_scatter_data(SALES, "amount", "amount", limit=2)) == 2


def test_histogram_bins() -> None:
    rows = [{"v": 0}, {"v": 5}, {"v": 10}]
    assert prepare_histogram_data(rows, "v", bins=2) == [
        {"range": "0 - 5", "count": 1},
        {"range": "5 - 10", "count": 2},
    ]


def test_histogram_labels_round_to_one_decimal() -> None:
    rows = [{"v": 0}, {"v": 1}]
    data = prepare_histogram_data(rows, "v", bins=3)
    assert [d["range"] for d in data] == ["0 - 0.3", "0.3 - 0.7", "0.7 - 1"]
    assert sum(d["count"] for d in data) == 2


def test_histogram_constant_column_lands_in_last_bin() -> None:
    data = prepare_histogram_data([{"v": 3}, {"v": 3}], "v")
    assert len(data) == 10
    assert data[-1]["count"] == 2
    assert sum(d["count"] for d in data[:-1]) == 0


def test_histogram_without_numbers() -> None:
    assert prepare_histogram_data([{"v": "x"}], "v") == []


def test_build_chart_dispatch() -> None:
    assert build_chart(SALES, ChartConfig(type="histogram", y_axis="amount"))
    assert build_chart(SALES, ChartConfig(type="scatter", x_axis="amount", y_axis="amount"))
    assert build_chart(SALES, ChartConfig(type="pie", x_axis="region"))[0]["name"] == "north"
    with pytest.raises(ValidationError):
        build_chart(SALES, ChartConfig(type="scatter", x_axis="amount"))
    with pytest.raises(ValidationError):
        build_chart(SALES, ChartConfig(type="bar"))


def test_templates_use_profiled_columns() -> None:
    stats = profile_dataset(SALES[:4]).column_stats
    templates = build_templates(stats)
    by_id = {t.id: t for t in templates}

    assert len(by_id) == len(templates)
    assert {t.category for t in templates} == {"basic", "analysis", "aggregation", "advanced", "quality"}
    assert "SUM([amount])" in by_id["stats_summary"].query
    assert "[date]" in by_id["date_trends"].query
    assert "GROUP BY [region], [product]" in by_id["multi_level_group"].query


def test_templates_without_columns() -> None:
    templates = build_templates([], "people")
    assert all("people" in t.query for t in templates)
    assert "[column_name]" in templates[2].query


def test_every_template_runs() -> None:
    rows = SALES[:4]
    stats = profile_dataset(rows).column_stats
    context = QueryContext()
    context.load(rows, {s.name: s.type for s in stats})
    for template in build_templates(stats):
        result = context.query(template.query)
        assert result.error is None, (template.id, result.error)
    context.close()
