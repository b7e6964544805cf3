"""
Warsaw district weighting
Applies district filtering and affluence / seasonal / route weighting to
report rows for the Warsaw market
"""
from datetime import datetime
from typing import Callable, List, Dict, Any, Optional, Tuple

from .dto import WarsawSettings, WarsawMetrics
from .report_utils import is_number
from ..utils.logger import get_logger

logger = get_logger(__name__)


# Relative purchasing power per district
DISTRICT_AFFLUENCE = {
    "Śródmieście": 1.5,
    "Mokotów": 1.3,
    "Żoliborz": 1.2,
    "Ochota": 1.1,
    "Wola": 1.0,
    "Praga-Północ": 0.9,
    "Praga-Południe": 0.8,
    "Targówek": 0.8,
    "Bemowo": 0.9,
    "Ursynów": 1.2,
    "Wilanów": 1.4,
    "Białołęka": 0.9,
    "Bielany": 1.0,
    "Włochy": 0.9,
    "Ursus": 0.8,
    "Wawer": 0.9,
    "Wesola": 0.8,
    "Rembertów": 0.8,
}

# HVAC demand by month, January first
SEASONAL_FACTORS = [
    1.4,  # January, heating peak
    1.3,
    1.1,
    0.9,
    0.8,  # May
    1.2,  # June, AC season starts
    1.5,  # July, AC peak
    1.5,  # August
    1.1,
    0.9,
    1.2,  # November, heating starts
    1.4,  # December
]

AVG_KM_BETWEEN_JOBS = 5
OPTIMAL_KM_BETWEEN_JOBS = 3


def get_district_affluence(district: Optional[str]) -> float:
    """Affluence multiplier of a district, 1.0 when unknown or unset"""
    if not district:
        return 1.0
    return DISTRICT_AFFLUENCE.get(district, 1.0)


def get_seasonal_factor(month: int) -> float:
    """Seasonal multiplier for a calendar month (1-12)"""
    return SEASONAL_FACTORS[month - 1]


def calculate_route_efficiency(data: List[Dict[str, Any]]) -> float:
    """
    Route efficiency score (0-100)

    Placeholder ratio of optimal to average distance between jobs; it does
    not plan routes.
    """
    total_jobs = len(data)
    if total_jobs == 0:
        return 0.0

    optimal_distance = total_jobs * OPTIMAL_KM_BETWEEN_JOBS
    average_distance = total_jobs * AVG_KM_BETWEEN_JOBS
    return max(0.0, min(100.0, optimal_distance * 100 / average_distance))


class WarsawService:
    """Warsaw district weighting"""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            clock: returns the current time; seasonal adjustment reads its month
        """
        self.clock = clock or datetime.now

    def apply(
        self,
        data: List[Dict[str, Any]],
        settings: WarsawSettings
    ) -> Tuple[List[Dict[str, Any]], WarsawMetrics]:
        """
        Apply the configured weighting steps

        Steps run in order: district filter, affluence weighting, seasonal
        adjustment, route efficiency. Rows are copied, never mutated.

        Args:
            data: rows of one data source
            settings: Warsaw settings of the report

        Returns:
            (processed rows, metrics)
        """
        metrics = WarsawMetrics()
        processed = [dict(row) for row in data]

        if settings.district_filter:
            district = settings.district_filter
            processed = [row for row in processed if self._in_district(row, district)]
            metrics.districts_analyzed.append(district)

        if settings.affluence_weighting:
            affluence = get_district_affluence(settings.district_filter)
            metrics.affluence_score = affluence
            for row in processed:
                row["affluenceWeightedValue"] = self._row_value(row) * affluence

        if settings.seasonal_adjustment:
            seasonal_factor = get_seasonal_factor(self.clock().month)
            metrics.seasonal_factor = seasonal_factor
            for row in processed:
                row["seasonalAdjustedValue"] = self._row_value(row) * seasonal_factor

        if settings.route_optimization:
            metrics.route_efficiency = calculate_route_efficiency(processed)

        logger.debug(
            f"Warsaw weighting: rows {len(data)} -> {len(processed)}, "
            f"metrics={metrics.model_dump()}"
        )
        return processed, metrics

    def _in_district(self, row: Dict[str, Any], district: str) -> bool:
        if row.get("district") == district:
            return True
        address = row.get("address")
        return isinstance(address, str) and district in address

    def _row_value(self, row: Dict[str, Any]) -> float:
        value = row.get("value")
        return value if is_number(value) else 0
