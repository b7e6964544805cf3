"""
Row filter service
Evaluates the filter clauses configured on a report data source
"""
from typing import List, Dict, Any, Sequence

from .dto import ReportFilter
from .report_utils import to_text, values_equal, compare
from ..utils.logger import get_logger

logger = get_logger(__name__)


class FilterService:
    """Row filter evaluation"""

    def apply_filters(
        self,
        data: List[Dict[str, Any]],
        filters: Sequence[ReportFilter]
    ) -> List[Dict[str, Any]]:
        """
        Keep the rows that pass every configured clause

        Args:
            data: source rows
            filters: ordered filter clauses

        Returns:
            rows that pass, in their original order
        """
        if not data or not filters:
            return data

        filtered_data = [row for row in data if self.row_passes(row, filters)]

        logger.debug(
            f"Applied {len(filters)} filters: {len(data)} -> {len(filtered_data)} rows"
        )
        return filtered_data

    def row_passes(self, row: Dict[str, Any], filters: Sequence[ReportFilter]) -> bool:
        """
        Fold the clauses left to right into one decision

        Each clause is combined with the running result using the operator
        carried by the *previous* clause (AND before the first one). A clause's
        own logical_operator only takes effect on the clause after it.

        Args:
            row: field name -> value mapping
            filters: ordered filter clauses

        Returns:
            whether the row passes
        """
        result = True
        current_logical_op = "AND"

        for clause in filters:
            condition_met = self.evaluate_condition(row.get(clause.field), clause.operator, clause.value)

            if current_logical_op == "AND":
                result = result and condition_met
            else:
                result = result or condition_met

            current_logical_op = clause.logical_operator or "AND"

        return result

    def evaluate_condition(self, field_value: Any, operator: str, value: Any) -> bool:
        """
        Evaluate one operator against a field value

        Args:
            field_value: the row's value for the clause field (None when missing)
            operator: filter operator
            value: filter value

        Returns:
            whether the condition holds; unknown operators are False
        """
        if operator == "equals":
            return values_equal(field_value, value)

        elif operator == "not_equals":
            return not values_equal(field_value, value)

        elif operator == "greater_than":
            return compare(field_value, value) == 1

        elif operator == "less_than":
            return compare(field_value, value) == -1

        elif operator == "contains":
            return to_text(value).lower() in to_text(field_value).lower()

        elif operator == "starts_with":
            return to_text(field_value).lower().startswith(to_text(value).lower())

        elif operator == "in":
            if not isinstance(value, (list, tuple)):
                return False
            return any(values_equal(field_value, candidate) for candidate in value)

        elif operator == "between":
            if not isinstance(value, (list, tuple)) or len(value) < 2:
                return False
            lower = compare(field_value, value[0])
            upper = compare(field_value, value[1])
            return lower is not None and upper is not None and lower >= 0 and upper <= 0

        logger.warning(f"Unknown filter operator: {operator}")
        return False
