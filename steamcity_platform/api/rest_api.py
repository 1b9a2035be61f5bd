"""
REST API endpoints for the SteamCity platform.

This module provides FastAPI endpoints for browsing clusters and protocols,
registering and listing experiments, and querying, ingesting and exporting
sensor data. Successful responses use a {"success": true, "data": ...}
envelope; failures use {"success": false, "error": ...}.
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from fastapi import Body, Depends, FastAPI, File, Query, Request, UploadFile, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..config import SystemConfig, get_config
from ..errors import DataError, InvalidArgumentError, PlatformError, create_error_context, handle_error
from ..logging_config import log_request
from ..query.engine import DeviceFilters, ExperimentFilters, MeasurementFilters, QueryEngine
from ..query.export import DataExporter, ExportFormat, parse_export_format
from ..storage.json_store import get_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager."""
    config = get_config()
    logger.info("SteamCity API starting up", extra={"data_dir": config.storage.data_dir})

    counts = get_store().counts()
    if not counts["clusters"] or not counts["protocols"]:
        logger.warning("Reference data is missing; cluster and protocol routes will return empty results",
                       extra={"collection_counts": counts})
    else:
        logger.info("Collections loaded", extra={"collection_counts": counts})

    yield

    logger.info("SteamCity API shutting down")


# FastAPI app instance
app = FastAPI(
    title="SteamCity Platform API",
    description="REST API for SteamCity citizen-science clusters, protocols, experiments and sensor data",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


# Dependency to get system configuration
def get_system_config() -> SystemConfig:
    """Get system configuration."""
    return get_config()


# Dependency to get query engine
def get_query_engine() -> QueryEngine:
    """Get query engine instance."""
    return QueryEngine(store=get_store(), config=get_config().query)


# Dependency to get data exporter
def get_data_exporter() -> DataExporter:
    """Get data exporter instance."""
    return DataExporter()


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    """Query strings sent empty (``?status=``) mean the filter is absent."""
    if value is None or not value.strip():
        return None
    return value


def _numeric_param(value: Optional[str], parameter: str, cast: Callable[[str], Any] = int) -> Any:
    """Parse an optional numeric query parameter; blank means absent."""
    value = _blank_to_none(value)
    if value is None:
        return None
    try:
        return cast(value.strip())
    except ValueError:
        raise InvalidArgumentError(f"Parameter '{parameter}' must be a number, got '{value}'",
                                   parameter=parameter)


def experiment_filters(
    student_name: Optional[str] = Query(default=None, alias="studentName"),
    student_group: Optional[str] = Query(default=None, alias="studentGroup"),
    school: Optional[str] = Query(default=None),
    city: Optional[str] = Query(default=None),
    language: Optional[str] = Query(default=None),
    experiment_status: Optional[str] = Query(default=None, alias="status"),
    protocol: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None, description="Text search over titles, descriptions and tags"),
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    include_private: bool = Query(default=False, alias="includePrivate"),
) -> ExperimentFilters:
    return ExperimentFilters(
        student_name=_blank_to_none(student_name),
        student_group=_blank_to_none(student_group),
        school=_blank_to_none(school),
        city=_blank_to_none(city),
        language=_blank_to_none(language),
        status=_blank_to_none(experiment_status),
        protocol=_blank_to_none(protocol),
        search=_blank_to_none(search),
        start_date=_blank_to_none(start_date),
        end_date=_blank_to_none(end_date),
        include_private=include_private,
    )


def device_filters(
    experiment_id: Optional[str] = Query(default=None, alias="experimentId"),
    sensor_type: Optional[str] = Query(default=None, alias="sensorType"),
    device_status: Optional[str] = Query(default=None, alias="status"),
    search: Optional[str] = Query(default=None),
    has_location: Optional[bool] = Query(default=None, alias="hasLocation"),
    north_east: Optional[str] = Query(default=None, alias="northEast", description="Bounding box corner 'lat,lng'"),
    south_west: Optional[str] = Query(default=None, alias="southWest", description="Bounding box corner 'lat,lng'"),
) -> DeviceFilters:
    return DeviceFilters(
        experiment_id=_blank_to_none(experiment_id),
        sensor_type=_blank_to_none(sensor_type),
        status=_blank_to_none(device_status),
        search=_blank_to_none(search),
        has_location=has_location,
        north_east=_blank_to_none(north_east),
        south_west=_blank_to_none(south_west),
    )


def measurement_filters(
    sensor_id: Optional[str] = Query(default=None, alias="sensorId"),
    experiment_id: Optional[str] = Query(default=None, alias="experimentId"),
    sensor_type: Optional[str] = Query(default=None, alias="sensorType"),
    student_name: Optional[str] = Query(default=None, alias="studentName"),
    search: Optional[str] = Query(default=None),
    period: Optional[str] = Query(default="all", description="One of 24h, 7d, 30d, all"),
    start: Optional[str] = Query(default=None, alias="from"),
    end: Optional[str] = Query(default=None, alias="to"),
    min_value: Optional[str] = Query(default=None, alias="minValue", description="Inclusive lower bound on value"),
    max_value: Optional[str] = Query(default=None, alias="maxValue", description="Inclusive upper bound on value"),
    has_location: Optional[bool] = Query(default=None, alias="hasLocation"),
    north_east: Optional[str] = Query(default=None, alias="northEast"),
    south_west: Optional[str] = Query(default=None, alias="southWest"),
) -> MeasurementFilters:
    return MeasurementFilters(
        sensor_id=_blank_to_none(sensor_id),
        experiment_id=_blank_to_none(experiment_id),
        sensor_type=_blank_to_none(sensor_type),
        student_name=_blank_to_none(student_name),
        search=_blank_to_none(search),
        period=_blank_to_none(period) or "all",
        start=_blank_to_none(start),
        end=_blank_to_none(end),
        min_value=_numeric_param(min_value, "minValue", float),
        max_value=_numeric_param(max_value, "maxValue", float),
        has_location=has_location,
        north_east=_blank_to_none(north_east),
        south_west=_blank_to_none(south_west),
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with its status and duration."""
    started = time.time()
    response = await call_next(request)
    log_request(
        logger, request.method, request.url.path, response.status_code,
        time.time() - started, query=str(request.url.query)
    )
    return response


@app.get("/", response_model=Dict[str, str])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "SteamCity Platform API",
        "version": __version__,
        "description": "REST API for SteamCity citizen-science data",
        "docs": "/docs",
        "health": "/api/health"
    }


@app.get("/api/health")
async def health_check(config: SystemConfig = Depends(get_system_config)):
    """Basic health check endpoint."""
    return {
        "status": "OK",
        "message": "SteamCity API is running",
        "version": __version__,
        "dataDir": config.storage.data_dir,
        "timestamp": datetime.now().isoformat()
    }


# Cluster endpoints

@app.get("/api/clusters")
async def list_clusters(engine: QueryEngine = Depends(get_query_engine)):
    """List every thematic cluster."""
    return engine.list_clusters().to_envelope()


@app.get("/api/clusters/{cluster_id}")
async def get_cluster(cluster_id: int, engine: QueryEngine = Depends(get_query_engine)):
    return {"success": True, "data": engine.get_cluster(cluster_id)}


@app.get("/api/clusters/{cluster_id}/protocols")
async def get_cluster_protocols(cluster_id: int, engine: QueryEngine = Depends(get_query_engine)):
    """Protocols whose primary or secondary cluster is the given one."""
    result = engine.get_cluster_protocols(cluster_id)
    return {
        "success": True,
        "data": {"cluster": result.metadata["cluster"], "protocols": result.data},
        "count": result.count
    }


# Protocol endpoints

@app.get("/api/cluster-protocols")
async def list_protocols(
    cluster: Optional[str] = Query(default=None, description="Primary or secondary cluster id"),
    difficulty: Optional[str] = Query(default=None, description="beginner, intermediate or advanced"),
    search: Optional[str] = Query(default=None, description="Text search over name, description and keywords"),
    engine: QueryEngine = Depends(get_query_engine)
):
    """List protocols with optional filters."""
    return engine.list_protocols(
        cluster=_numeric_param(cluster, "cluster"),
        difficulty=_blank_to_none(difficulty),
        search=_blank_to_none(search)
    ).to_envelope()


@app.get("/api/cluster-protocols/search")
async def search_protocols(
    q: Optional[str] = Query(default=None, description="Required search text"),
    cluster: Optional[str] = Query(default=None, description="Primary or secondary cluster id"),
    difficulty: Optional[str] = Query(default=None),
    engine: QueryEngine = Depends(get_query_engine)
):
    """Search protocols; each result carries its primary cluster projection."""
    return engine.search_protocols(
        q,
        cluster=_numeric_param(cluster, "cluster"),
        difficulty=_blank_to_none(difficulty)
    ).to_envelope(filters_key="query")


@app.get("/api/cluster-protocols/{protocol_id}")
async def get_protocol(protocol_id: str, engine: QueryEngine = Depends(get_query_engine)):
    return {"success": True, "data": engine.get_protocol(protocol_id)}


# Experiment endpoints

@app.get("/api/experiments")
async def list_experiments(
    filters: ExperimentFilters = Depends(experiment_filters),
    engine: QueryEngine = Depends(get_query_engine)
):
    """List public experiments with optional filters."""
    return engine.list_experiments(filters).to_envelope()


@app.post("/api/experiments", status_code=status.HTTP_201_CREATED)
async def create_experiment(
    payload: Dict[str, Any] = Body(...),
    engine: QueryEngine = Depends(get_query_engine)
):
    """Register a new experiment."""
    record = engine.create_experiment(payload)
    return {"success": True, "data": record, "message": "Experiment created successfully"}


@app.get("/api/experiments/{experiment_id}")
async def get_experiment(experiment_id: str, engine: QueryEngine = Depends(get_query_engine)):
    return {"success": True, "data": engine.get_experiment(experiment_id)}


@app.get("/api/experiments/{experiment_id}/data")
async def get_experiment_data(experiment_id: str, engine: QueryEngine = Depends(get_query_engine)):
    """Experiment with its measurements, most recent first."""
    return {"success": True, "data": engine.get_experiment_data(experiment_id)}


# Sensor endpoints

@app.get("/api/sensors/devices")
async def list_devices(
    filters: DeviceFilters = Depends(device_filters),
    engine: QueryEngine = Depends(get_query_engine)
):
    return engine.list_devices(filters).to_envelope()


@app.get("/api/sensors/devices/{device_id}")
async def get_device(device_id: str, engine: QueryEngine = Depends(get_query_engine)):
    return {"success": True, "data": engine.get_device(device_id)}


@app.get("/api/sensors/types")
async def list_sensor_types(engine: QueryEngine = Depends(get_query_engine)):
    types = engine.sensor_types()
    return {"success": True, "data": types, "count": len(types)}


@app.get("/api/sensors/types/by-experiment")
async def list_sensor_types_for_experiment(
    experiment_id: Optional[str] = Query(default=None, alias="experimentId"),
    engine: QueryEngine = Depends(get_query_engine)
):
    types = engine.sensor_types_for_experiment(experiment_id)
    return {"success": True, "data": types, "count": len(types)}


@app.get("/api/sensors/measurements")
async def list_measurements(
    filters: MeasurementFilters = Depends(measurement_filters),
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    engine: QueryEngine = Depends(get_query_engine)
):
    """Measurements, most recent first, one page at a time."""
    return engine.list_measurements(filters, page=page, limit=limit).to_envelope()


@app.post("/api/sensors/measurements", status_code=status.HTTP_201_CREATED)
async def add_measurements(
    payload: Union[List[Dict[str, Any]], Dict[str, Any]] = Body(...),
    engine: QueryEngine = Depends(get_query_engine)
):
    """Store one measurement or a batch."""
    records = engine.add_measurements(payload)
    return {"success": True, "data": records, "count": len(records)}


@app.post("/api/sensors/upload-csv", status_code=status.HTTP_201_CREATED)
async def upload_csv(
    csv_file: UploadFile = File(..., alias="csvFile"),
    engine: QueryEngine = Depends(get_query_engine),
    exporter: DataExporter = Depends(get_data_exporter)
):
    """Import measurements from an uploaded CSV file."""
    context = create_error_context("upload_csv", "measurements", file_path=csv_file.filename)
    if not (csv_file.filename or "").lower().endswith(".csv"):
        raise DataError("Only CSV files are allowed", context=context)

    content = await csv_file.read()
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DataError("CSV file must be UTF-8 encoded", context=context, original_exception=e)

    records = engine.add_measurements(exporter.parse_measurements_csv(text))
    return {
        "success": True,
        "data": records,
        "count": len(records),
        "message": f"Imported {len(records)} measurements from {csv_file.filename}"
    }


@app.get("/api/sensors/unique")
async def list_unique_sensors(
    filters: MeasurementFilters = Depends(measurement_filters),
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    engine: QueryEngine = Depends(get_query_engine)
):
    """One summary per experiment and sensor type."""
    return engine.unique_sensors(filters, page=page, limit=limit).to_envelope()


@app.get("/api/sensors/stats")
async def measurement_stats(engine: QueryEngine = Depends(get_query_engine)):
    return {"success": True, "data": engine.measurement_stats()}


@app.get("/api/sensors/diverse")
async def diverse_measurements(
    limit: Optional[int] = Query(default=None, ge=1),
    engine: QueryEngine = Depends(get_query_engine)
):
    """Measurements sampled across distinct locations, for map display."""
    return engine.diverse_measurements(limit).to_envelope()


@app.get("/api/sensors/export")
async def export_measurements(
    export_format: str = Query(default="json", alias="format", description="json or csv"),
    filters: MeasurementFilters = Depends(measurement_filters),
    engine: QueryEngine = Depends(get_query_engine),
    exporter: DataExporter = Depends(get_data_exporter)
):
    """Download filtered measurements as a JSON or CSV file."""
    fmt = parse_export_format(export_format)
    result = engine.query_measurements(filters)
    content = exporter.export_measurements(result.data, fmt)

    media_type = "text/csv" if fmt == ExportFormat.CSV else "application/json"
    filename = f"steamcity_measurements_{datetime.now().strftime('%Y%m%d_%H%M%S')}.{fmt.value}"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


# Error handlers

def _error_body(error: str, detail: Any) -> Dict[str, Any]:
    return {
        "success": False,
        "error": error,
        "detail": detail,
        "timestamp": datetime.now().isoformat()
    }


@app.exception_handler(PlatformError)
async def platform_exception_handler(request: Request, exc: PlatformError):
    """Map platform errors onto their HTTP status."""
    handle_error(exc, create_error_context(
        operation=exc.context.operation,
        collection=exc.context.collection,
        entity_id=exc.context.entity_id,
        request_path=request.url.path,
        request_params=dict(request.query_params)
    ))
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.category.value)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle malformed query parameters and bodies as bad requests."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("Invalid request parameters", jsonable_encoder(exc.errors()))
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.detail, f"HTTP {exc.status_code}")
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal server error", str(exc))
    )
