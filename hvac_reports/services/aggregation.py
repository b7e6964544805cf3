"""
Group-by aggregation for report visualizations
"""
from typing import List, Dict, Any

from .dto import VisualizationConfig
from .report_utils import is_number, group_key


def aggregate_values(aggregation: str, rows: List[Dict[str, Any]], y_axis: str) -> Any:
    """
    Aggregate the y-axis values of one group

    Non-numeric values are ignored by every function except count, which
    counts the rows of the group.
    """
    values = [row.get(y_axis) for row in rows]
    numbers = [v for v in values if is_number(v)]

    if aggregation == "sum":
        return sum(numbers)
    if aggregation == "avg":
        return sum(numbers) / len(numbers) if numbers else 0
    if aggregation == "count":
        return len(rows)
    if aggregation == "min":
        return min(numbers) if numbers else 0
    if aggregation == "max":
        return max(numbers) if numbers else 0
    if aggregation == "distinct":
        return len({group_key(v) for v in numbers})
    return None


def apply_aggregation(
    data: List[Dict[str, Any]],
    visualization: VisualizationConfig
) -> List[Dict[str, Any]]:
    """
    Group rows and aggregate the y-axis field

    Args:
        data: rows after calculated fields
        visualization: visualization settings

    Returns:
        one row per group in first-occurrence order, or the input rows
        unchanged when group_by or aggregation is unset
    """
    group_by = visualization.group_by
    aggregation = visualization.aggregation
    if not group_by or not aggregation:
        return data

    groups: Dict[tuple, List[Dict[str, Any]]] = {}
    keys: Dict[tuple, Any] = {}
    for row in data:
        value = row.get(group_by)
        key = group_key(value)
        if key not in groups:
            groups[key] = []
            keys[key] = value
        groups[key].append(row)

    results = []
    for key, rows in groups.items():
        result = {group_by: keys[key]}
        if visualization.y_axis:
            result[visualization.y_axis] = aggregate_values(aggregation, rows, visualization.y_axis)
        results.append(result)

    return results
