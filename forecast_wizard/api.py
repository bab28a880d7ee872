"""
Forecast wizard API endpoints.

Hosts the validation boundary the wizard posts to before repair
(/api/validate/analyze) and the wizard steps that run server-side:
upload, profiling, column selection checks, repair + aggregation and
export.
"""

import io
import logging
from datetime import datetime

from fastapi import APIRouter, File, Query, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse

from forecast_wizard.config import ColumnSelection, ForecastConfig, GapHandlingChoice
from forecast_wizard.exceptions import PreconditionError
from forecast_wizard.export import export_rows
from forecast_wizard.profiling.classifier import ClassificationOverlay
from forecast_wizard.profiling.dates import detect_date_granularity, needs_aggregation
from forecast_wizard.profiling.profiler import profile_dataset
from forecast_wizard.repair.aggregation import analyze_aggregation_impact
from forecast_wizard.repair.pipeline import prepare_training_rows
from forecast_wizard.schemas import ExportRequest, ProcessRequest, ProfileRequest, SelectionRequest
from forecast_wizard.settings import get_settings
from forecast_wizard.upload import PREVIEW_ROWS, parse_csv_rows
from forecast_wizard.validation.integrity import validate
from forecast_wizard.validation.selection import validate_selection

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Forecast Wizard"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/validate/analyze")
async def analyze_series(request: dict):
    """
    Series integrity validation.

    Body: {data: Row[], config: {id_column, timestamp_column,
    time_granularity, prediction_length}}. Precondition failures answer
    400, anything unexpected 500, both as {error}.
    """
    data = request.get('data')
    config = request.get('config')
    if not data or not config:
        return _error(400, "Missing data or configuration")

    try:
        forecast_config = ForecastConfig.from_wire(config)
        report = validate(data, forecast_config)
    except PreconditionError as e:
        logger.warning(f"Validation rejected: {e}")
        return _error(400, str(e))
    except Exception as e:
        logger.error(f"Validation error: {e}", exc_info=True)
        return _error(500, f"Validation failed: {e}")

    return JSONResponse(content=report.to_dict())


@router.post("/wizard/upload")
async def upload_csv(file: UploadFile = File(...)):
    """Parse an uploaded CSV, profile it and return a preview."""
    filename = file.filename or ''
    if not filename.lower().endswith('.csv'):
        return _error(400, "Only CSV files are supported")

    content = await file.read()
    settings = get_settings()
    if len(content) > settings.max_upload_bytes:
        return _error(413, f"File size exceeds {settings.max_upload_mb}MB limit")

    try:
        columns, rows = parse_csv_rows(content)
        profile = profile_dataset(rows)
    except PreconditionError as e:
        logger.warning(f"Upload rejected: {e}")
        return _error(400, str(e))
    except Exception as e:
        logger.error(f"Upload error: {e}", exc_info=True)
        return _error(500, f"Upload failed: {e}")

    logger.info(f"Uploaded {filename}: {len(rows)} rows")
    return JSONResponse(content={
        "success": True,
        "filename": filename,
        "columns": columns,
        "totalRows": len(rows),
        "preview": rows[:PREVIEW_ROWS],
        "data": rows,
        "profile": profile.to_dict(),
    })


@router.post("/wizard/profile")
async def profile_rows(request: ProfileRequest):
    """Classify and quality-check every column of already-parsed rows."""
    try:
        profile = profile_dataset(request.data, user_classified=request.user_classified)
    except PreconditionError as e:
        return _error(400, str(e))
    except Exception as e:
        logger.error(f"Profile error: {e}", exc_info=True)
        return _error(500, f"Profiling failed: {e}")
    return JSONResponse(content=profile.to_dict())


@router.post("/wizard/selection")
async def check_selection(request: SelectionRequest):
    """Check a column selection and preview the aggregation it implies."""
    try:
        selection = ColumnSelection.from_wire(request.selection)
        errors = validate_selection(selection, request.data)
        result = {"valid": not errors, "errors": errors}
        if selection.date and request.data:
            granularity = detect_date_granularity(row.get(selection.date) for row in request.data)
            result["dateGranularity"] = granularity.value if granularity else None
            if not errors:
                config = selection.to_config()
                result["needsAggregation"] = needs_aggregation(granularity, config.frequency)
                result["aggregationImpact"] = analyze_aggregation_impact(
                    request.data, selection.date, selection.grouping
                )
    except PreconditionError as e:
        return _error(400, str(e))
    except Exception as e:
        logger.error(f"Selection check error: {e}", exc_info=True)
        return _error(500, f"Selection check failed: {e}")
    return JSONResponse(content=result)


@router.post("/wizard/process")
async def process_data(request: ProcessRequest):
    """Apply gap-handling choices, then aggregate to the configured frequency."""
    if not request.data or not request.config:
        return _error(400, "Missing data or configuration")

    try:
        config = ForecastConfig.from_wire(request.config)
        choices = GapHandlingChoice.from_wire(request.choices)
        overlay = ClassificationOverlay.create(
            auto_classified=request.column_types,
            user_classified=request.user_classified,
        )
        result = prepare_training_rows(
            request.data,
            config,
            request.series_analysis,
            choices,
            column_types=overlay,
            aggregation_rules=request.aggregation_rules,
        )
    except PreconditionError as e:
        logger.warning(f"Processing rejected: {e}")
        return _error(400, str(e))
    except Exception as e:
        logger.error(f"Processing error: {e}", exc_info=True)
        return _error(500, f"Processing failed: {e}")

    return JSONResponse(content=result.to_dict())


@router.post("/wizard/export")
async def export_data(request: ExportRequest, format: str = Query("csv")):
    """Download rows as a CSV or JSON attachment."""
    try:
        exported = export_rows(request.data, format)
    except PreconditionError as e:
        return _error(400, str(e))

    base = request.filename or f"forecast_data_{datetime.now().strftime('%Y%m%d')}"
    filename = f"{base}.{exported['extension']}"
    return StreamingResponse(
        io.BytesIO(exported['content']),
        media_type=exported['media_type'],
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )
