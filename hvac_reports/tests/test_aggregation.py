"""
Group-by aggregation tests
"""
import pytest

from hvac_reports.services.aggregation import apply_aggregation, aggregate_values
from hvac_reports.services.dto import VisualizationConfig


@pytest.fixture
def jobs():
    return [
        {"district": "Wola", "value": 100},
        {"district": "Mokotów", "value": 50},
        {"district": "Wola", "value": 300},
        {"district": "Mokotów", "value": "pending"},
        {"district": "Ochota", "value": 20},
    ]


def visualization(aggregation, group_by="district", y_axis="value"):
    return VisualizationConfig(type="bar_chart", group_by=group_by, y_axis=y_axis, aggregation=aggregation)


def test_no_grouping_returns_rows_unchanged(jobs):
    assert apply_aggregation(jobs, VisualizationConfig()) == jobs
    assert apply_aggregation(jobs, VisualizationConfig(group_by="district")) == jobs
    assert apply_aggregation(jobs, VisualizationConfig(aggregation="sum")) == jobs


def test_sum_groups_in_first_occurrence_order(jobs):
    result = apply_aggregation(jobs, visualization("sum"))

    assert result == [
        {"district": "Wola", "value": 400},
        {"district": "Mokotów", "value": 50},
        {"district": "Ochota", "value": 20},
    ]


def test_avg_ignores_non_numeric_values(jobs):
    result = apply_aggregation(jobs, visualization("avg"))

    assert result[0]["value"] == 200
    assert result[1]["value"] == 50


def test_count_counts_rows(jobs):
    result = apply_aggregation(jobs, visualization("count"))

    assert [row["value"] for row in result] == [2, 2, 1]


def test_min_max(jobs):
    assert [row["value"] for row in apply_aggregation(jobs, visualization("min"))] == [100, 50, 20]
    assert [row["value"] for row in apply_aggregation(jobs, visualization("max"))] == [300, 50, 20]


def test_distinct_counts_unique_numbers():
    rows = [{"g": "a", "v": 1}, {"g": "a", "v": 1}, {"g": "a", "v": 2}, {"g": "a", "v": "x"}]

    assert aggregate_values("distinct", rows, "v") == 2


def test_empty_numeric_group_defaults_to_zero():
    rows = [{"g": "a", "v": None}]

    assert aggregate_values("avg", rows, "v") == 0
    assert aggregate_values("min", rows, "v") == 0
    assert aggregate_values("max", rows, "v") == 0
    assert aggregate_values("sum", rows, "v") == 0


def test_output_rows_only_carry_group_and_y_axis():
    rows = [{"district": "Wola", "value": 1, "extra": True}]

    result = apply_aggregation(rows, visualization("sum"))

    assert result == [{"district": "Wola", "value": 1}]


def test_group_without_y_axis():
    rows = [{"district": "Wola"}, {"district": "Wola"}]

    result = apply_aggregation(rows, visualization("count", y_axis=None))

    assert result == [{"district": "Wola"}]


def test_booleans_group_apart_from_numbers():
    rows = [{"flag": True, "v": 1}, {"flag": 1, "v": 2}]

    result = apply_aggregation(rows, visualization("sum", group_by="flag", y_axis="v"))

    assert len(result) == 2


@pytest.mark.parametrize("aggregation", ["sum", "min", "max", "avg"])
def test_aggregation_is_idempotent(jobs, aggregation):
    once = apply_aggregation(jobs, visualization(aggregation))
    twice = apply_aggregation(once, visualization(aggregation))

    assert twice == once


def test_count_second_pass_counts_one_row_per_group(jobs):
    once = apply_aggregation(jobs, visualization("count"))
    twice = apply_aggregation(once, visualization("count"))

    assert [row["value"] for row in once] == [2, 2, 1]
    assert twice == [
        {"district": "Wola", "value": 1},
        {"district": "Mokotów", "value": 1},
        {"district": "Ochota", "value": 1},
    ]
