"""
Pydantic models for request/response validation
"""
from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field


class ProfileRequest(BaseModel):
    """Request model for dataset profiling"""
    data: List[Dict[str, Any]] = Field(default=[], description="Raw rows as parsed from the CSV")
    user_classified: Optional[Dict[str, str]] = Field(
        default=None, alias="userClassified", description="User column type overrides"
    )

    class Config:
        populate_by_name = True


class SelectionRequest(BaseModel):
    """Request model for the column selection check"""
    data: List[Dict[str, Any]] = Field(default=[], description="Raw rows")
    selection: Dict[str, Any] = Field(
        default={}, description="{target, date, frequency, horizon, grouping}"
    )


class ProcessRequest(BaseModel):
    """Request model for gap repair + aggregation"""
    data: List[Dict[str, Any]] = Field(default=[], description="Raw rows")
    config: Dict[str, Any] = Field(
        default={},
        description="{id_column, timestamp_column, time_granularity, prediction_length, target_column}",
    )
    choices: Dict[str, Any] = Field(default={}, description="{criticalBreaks, nonCriticalBreaks}")
    series_analysis: Optional[List[Dict[str, Any]]] = Field(
        default=None, alias="seriesAnalysis", description="Per-series report from /api/validate/analyze"
    )
    column_types: Optional[Dict[str, str]] = Field(
        default=None, alias="columnTypes", description="Auto-detected column types"
    )
    user_classified: Optional[Dict[str, str]] = Field(
        default=None, alias="userClassified", description="User column type overrides"
    )
    aggregation_rules: Optional[Dict[str, str]] = Field(
        default=None, alias="aggregationRules", description="Per-column reducer, e.g. {'sales': 'sum'}"
    )

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "data": [
                    {"date": "2024-01-01", "store": "A", "sales": 10},
                    {"date": "2024-01-15", "store": "A", "sales": 20},
                ],
                "config": {
                    "id_column": "store",
                    "timestamp_column": "date",
                    "time_granularity": "M",
                    "prediction_length": 3,
                    "target_column": "sales",
                },
                "choices": {"criticalBreaks": "fill_zeros", "nonCriticalBreaks": "mark_missing"},
            }
        }


class ExportRequest(BaseModel):
    """Request model for CSV/JSON export"""
    data: List[Dict[str, Any]] = Field(default=[], description="Rows to export")
    filename: Optional[str] = Field(default=None, description="Download name without extension")


class HealthResponse(BaseModel):
    """Health check response"""
    status: str = "healthy"
    version: str
