"""
Data Transfer Objects
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any, Literal


ReportType = Literal["dashboard", "table", "chart", "kpi", "custom"]
DataSourceType = Literal["document", "relational", "vector", "calculated"]
Permission = Literal["view", "edit", "admin"]
TemplateCategory = Literal[
    "hvac_performance",
    "financial",
    "operational",
    "customer",
    "equipment",
    "district_analysis",
]


class ReportFilter(BaseModel):
    """One filter clause of a data source"""
    field: str
    operator: str  # equals, not_equals, greater_than, less_than, contains, starts_with, in, between
    value: Any = None
    logical_operator: Optional[Literal["AND", "OR"]] = None  # combines with the next clause


class JoinSpec(BaseModel):
    """Declared join (stored with the report, not executed)"""
    table: str
    on: str
    type: Literal["inner", "left", "right"] = "inner"


class DataSourceConfig(BaseModel):
    """Data source of a report"""
    id: str
    type: DataSourceType
    table: Optional[str] = None  # collection name or vector result type
    query: Optional[str] = None  # search text, or formula for calculated sources
    filters: List[ReportFilter] = Field(default_factory=list)
    joins: List[JoinSpec] = Field(default_factory=list)


class VisualizationConfig(BaseModel):
    """Visualization and aggregation settings"""
    type: Literal[
        "table",
        "bar_chart",
        "line_chart",
        "pie_chart",
        "area_chart",
        "scatter_plot",
        "heatmap",
        "gauge",
        "kpi_card",
    ] = "table"
    x_axis: Optional[str] = None
    y_axis: Optional[str] = None
    group_by: Optional[str] = None
    aggregation: Optional[Literal["sum", "avg", "count", "min", "max", "distinct"]] = None
    colors: List[str] = Field(default_factory=list)
    value_field: Optional[str] = None
    kpi_title: Optional[str] = None
    min: Optional[float] = None
    max: Optional[float] = None
    custom_settings: Dict[str, Any] = Field(default_factory=dict)


class CalculatedField(BaseModel):
    """Per-row derived value"""
    name: str
    formula: str
    data_type: Literal["number", "string", "date", "boolean"] = "number"


class WarsawSettings(BaseModel):
    """Warsaw district weighting toggles"""
    district_filter: Optional[str] = None
    affluence_weighting: bool = False
    seasonal_adjustment: bool = False
    route_optimization: bool = False


class ReportConfig(BaseModel):
    """Full report configuration"""
    data_sources: List[DataSourceConfig]
    visualization: VisualizationConfig = Field(default_factory=VisualizationConfig)
    calculated_fields: List[CalculatedField] = Field(default_factory=list)
    warsaw_settings: Optional[WarsawSettings] = None

    @field_validator("data_sources")
    @classmethod
    def _require_data_source(cls, value: List[DataSourceConfig]) -> List[DataSourceConfig]:
        if not value:
            raise ValueError("a report needs at least one data source")
        return value


class ShareEntry(BaseModel):
    """Share grant"""
    user_id: str
    permission: Permission


class ScheduleConfig(BaseModel):
    """Delivery schedule (stored only)"""
    enabled: bool
    frequency: Literal["hourly", "daily", "weekly", "monthly"]
    time: Optional[str] = None
    recipients: List[str] = Field(default_factory=list)
    format: Literal["pdf", "excel", "csv", "email"] = "pdf"


class WarsawMetrics(BaseModel):
    """Regional metrics emitted by the weighting step"""
    districts_analyzed: List[str] = Field(default_factory=list)
    affluence_score: float = 0
    route_efficiency: float = 0
    seasonal_factor: float = 1


class ExecutionMetadata(BaseModel):
    """Metadata of one report execution"""
    total_rows: int = 0
    execution_time: int = 0  # milliseconds
    data_sources_used: List[str] = Field(default_factory=list)
    generated_at: int = 0  # epoch milliseconds
    document_time: int = 0
    relational_time: int = 0
    vector_time: int = 0
    warsaw_metrics: Optional[WarsawMetrics] = None


class ExecutionResult(BaseModel):
    """Rows plus metadata returned to callers"""
    data: List[Dict[str, Any]] = Field(default_factory=list)
    metadata: ExecutionMetadata = Field(default_factory=ExecutionMetadata)
