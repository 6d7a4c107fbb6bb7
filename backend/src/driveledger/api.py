"""FastAPI application for DriveLedger."""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from .catalog import available_routes, data_categories, diagnostic_info
from .config import DL_CORS_ORIGINS, get_settings
from .errors import DataLoadError, UnknownCategoryError
from .history import SimulationHistory
from .samples import SampleStore
from .schema import (
    EfficiencyRequest,
    EstimateValueRequest,
    LoadSamplesRequest,
    SamplesRequest,
    StartSimulationRequest,
)
from .scoring import batch_reward, efficiency_score, estimate_value, fuel_consumption
from .session import SessionController

_logger = logging.getLogger("driveledger.api")

settings = get_settings()

# One simulation per server process
sample_store = SampleStore(settings.samples_json_path, settings.samples_csv_path)
history = SimulationHistory()
controller = SessionController(sample_store, history=history, interval_ms=settings.tick_interval_ms)

# Create FastAPI app
app = FastAPI(
    title="DriveLedger API",
    description="Simulated vehicle telemetry, rewards and data valuation",
    version="0.1.0"
)

# CORS: opt-in via env
origins = [o.strip() for o in (DL_CORS_ORIGINS or "").split(",") if o.strip()]
if origins or DL_CORS_ORIGINS.strip() == "*":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if DL_CORS_ORIGINS.strip() == "*" else origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.get("/health")
async def health_check() -> Dict[str, bool]:
    """Health check endpoint."""
    return {"ok": True}


@app.get("/config")
async def get_config() -> Dict[str, Any]:
    """Get application configuration."""
    return {
        "tick_interval_ms": settings.tick_interval_ms,
        "samples_loaded": len(sample_store),
    }


@app.post("/samples/load")
async def load_samples(body: Optional[LoadSamplesRequest] = None) -> Dict[str, Any]:
    """
    (Re)load the telemetry corpus.

    Paths default to the configured DL_SAMPLES_JSON / DL_SAMPLES_CSV.
    """
    body = body or LoadSamplesRequest()
    try:
        samples = sample_store.load(body.json_path, body.csv_path)
    except DataLoadError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": e.code, "message": e.message}
        )
    return {
        "success": True,
        "data_points_loaded": len(samples),
        "source": sample_store.source,
    }


@app.get("/routes")
async def get_routes() -> Dict[str, Any]:
    routes = available_routes()
    return {"routes": routes, "message": f"Found {len(routes)} available routes"}


@app.post("/simulations")
async def start_simulation(body: StartSimulationRequest) -> Dict[str, Any]:
    """
    Start a drive simulation.

    Failures (already running, unknown route, corpus unavailable) come back
    as success=false with an error code.
    """
    result = controller.start(body.route_type, body.duration_minutes)
    return result.to_dict()


@app.get("/simulations/status")
async def get_simulation_status() -> Dict[str, Any]:
    return controller.status()


@app.post("/simulations/stop")
async def stop_simulation() -> Dict[str, Any]:
    result = controller.stop()
    data = result.to_dict()
    if not result.success:
        data["summary"] = None
    return data


@app.get("/simulations")
async def list_simulations() -> Dict[str, Any]:
    return {"simulations": history.list()}


@app.get("/simulations/{simulation_id}")
async def get_simulation(simulation_id: str) -> Dict[str, Any]:
    summary = history.get(simulation_id)
    if summary is None:
        raise HTTPException(status_code=404, detail=f"Simulation {simulation_id} not found")
    return {"simulation_id": simulation_id, "summary": summary.model_dump()}


@app.post("/rewards/estimate")
async def estimate_reward(body: SamplesRequest) -> Dict[str, Any]:
    """Token amount a reward collaborator would mint for these points."""
    return {"reward": batch_reward(body.samples), "points": len(body.samples)}


@app.post("/analysis/efficiency")
async def analyze_efficiency(body: EfficiencyRequest) -> Dict[str, Any]:
    fuel = fuel_consumption(body.samples, body.window)
    return {
        "efficiency_score": efficiency_score(body.samples, body.window),
        "fuel_consumption": fuel.model_dump() if fuel else None,
    }


@app.get("/marketplace/datatypes")
async def get_data_types() -> Dict[str, Any]:
    return {"data_types": data_categories()}


@app.post("/marketplace/estimate-value")
async def estimate_data_value(body: EstimateValueRequest) -> Dict[str, Any]:
    try:
        value = estimate_value(body.samples, body.data_type)
    except UnknownCategoryError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": e.code, "message": e.message}
        )
    return {
        "estimated_value": value,
        "data_type": body.data_type,
        "points": len(body.samples),
    }


@app.get("/diagnostics/{code}")
async def get_diagnostic(code: str) -> Dict[str, Any]:
    info = diagnostic_info(code)
    if info is None:
        raise HTTPException(status_code=404, detail=f"Diagnostic code {code} not found")
    return info.model_dump()


@app.exception_handler(HTTPException)
async def _http_exception_handler(request: Request, exc: HTTPException):
    """Preserve HTTPException status codes and return a unified JSON shape."""
    detail = exc.detail
    if isinstance(detail, dict):
        message = detail.get("message") or str(detail)
        details = {k: v for k, v in detail.items() if k != "message"}
    else:
        message = str(detail)
        details = None

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.status_code,
                "type": "http_error",
                "message": message,
                "details": details,
            }
        },
    )


@app.exception_handler(RequestValidationError)
async def _validation_exception_handler(request: Request, exc: RequestValidationError):
    """422 in the unified shape; offending input values are not echoed back."""
    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": 422,
                "type": "validation_error",
                "message": "Request validation failed",
                "details": [
                    {"loc": [str(p) for p in err.get("loc", ())], "msg": err.get("msg", "")}
                    for err in exc.errors()
                ],
            }
        },
    )


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    if isinstance(exc, HTTPException):
        raise exc
    _logger.exception("Unhandled server error")
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": 500,
                "type": "internal_error",
                "message": "Internal server error",
                "details": None,
            }
        },
    )
