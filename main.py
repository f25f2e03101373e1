# main.py
"""
FastAPI entry point for the Macro Tracker service.

Startup builds the settings, the Supabase session manager and the service
container; shutdown closes the session. Includes request-id middleware,
typed error rendering and liveness/readiness checks.
"""
import asyncio
import logging
import os
import uuid
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from macro_tracker.api.analysis import router as analysis_router
from macro_tracker.api.deps import build_services
from macro_tracker.api.library import router as library_router
from macro_tracker.api.meals import router as meals_router
from macro_tracker.api.tracker import router as tracker_router
from macro_tracker.config.settings import get_settings
from macro_tracker.config.supabase import SupabaseSessionManager
from macro_tracker.errors import MacroTrackerError

logger = logging.getLogger("uvicorn.error")


async def _run_sync_in_executor(fn, *args, timeout: float):
    """Run a blocking function in the default threadpool, bounded by `timeout`."""
    loop = asyncio.get_running_loop()
    return await asyncio.wait_for(loop.run_in_executor(None, fn, *args), timeout=timeout)


async def _check_database(app: FastAPI, timeout: float) -> bool:
    manager: SupabaseSessionManager = app.state.session_manager
    try:
        return bool(await _run_sync_in_executor(manager.health_check, timeout=timeout))
    except asyncio.TimeoutError:
        logger.warning("Supabase health_check timed out after %.1fs", timeout)
    except Exception as exc:
        logger.exception("Unexpected error calling health_check: %s", exc)
    return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.getLogger("macro_tracker").setLevel(settings.log_level.upper())
    logger.info("Starting Macro Tracker...")

    manager = SupabaseSessionManager(settings)
    await asyncio.to_thread(manager.start)
    app.state.session_manager = manager
    app.state.services = build_services(settings, manager.client)

    app.state.supabase_healthy = await _check_database(app, settings.health_check_timeout)
    logger.info("Supabase health: %s", app.state.supabase_healthy)
    if not app.state.supabase_healthy and settings.fail_on_db_startup:
        logger.error("FAIL_ON_DB_STARTUP enabled and Supabase unhealthy. Aborting startup.")
        await asyncio.to_thread(manager.close)
        raise RuntimeError("Supabase unhealthy on startup")

    try:
        yield
    finally:
        logger.info("Shutting down Macro Tracker...")
        await asyncio.to_thread(manager.close)


app = FastAPI(
    title="Macro Tracker",
    description="Meal logging, AI nutrition analysis and macro goal tracking",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id_and_log(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    request.state.request_id = request_id
    logger.info("→ Incoming request %s %s id=%s", request.method, request.url.path, request_id)
    try:
        response: Response = await call_next(request)
    except Exception as exc:
        logger.exception("Handler error for request id=%s: %s", request_id, exc)
        return JSONResponse(
            {"error": "Internal server error"}, status_code=500, headers={"X-Request-Id": request_id}
        )
    logger.info("← Completed request id=%s status=%s", request_id, getattr(response, "status_code", None))
    response.headers["X-Request-Id"] = request_id
    return response


@app.exception_handler(MacroTrackerError)
async def macro_tracker_error_handler(request: Request, exc: MacroTrackerError):
    if exc.status_code >= 500:
        logger.error("Request %s failed: %s", request.url.path, exc.message)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg')}" if field else "Invalid request"
    return JSONResponse({"error": message}, status_code=400)


app.include_router(analysis_router, prefix="/functions/v1", tags=["ai"])
app.include_router(meals_router, prefix="/api/meals", tags=["meals"])
app.include_router(library_router, prefix="/api/library", tags=["library"])
app.include_router(tracker_router, prefix="/api", tags=["tracker"])


@app.get("/")
async def root() -> Dict[str, str]:
    return {"message": "Macro Tracker is running!", "status": "healthy"}


@app.get("/health")
async def health_check():
    """Liveness with a bounded database probe; reports degraded instead of failing."""
    settings = get_settings()
    db_ok = await _check_database(app, settings.health_check_timeout)
    return JSONResponse(
        {
            "status": "healthy" if db_ok else "degraded",
            "service": "macro-tracker",
            "database": "connected" if db_ok else "disconnected",
        },
        status_code=200 if db_ok else 503,
    )


@app.get("/ready")
async def readiness_check():
    """Readiness from the startup probe, or a quick one-shot check if startup never set it."""
    supabase_state: Optional[bool] = getattr(app.state, "supabase_healthy", None)
    if supabase_state is None:
        supabase_state = await _check_database(app, timeout=2.0)

    if supabase_state:
        return JSONResponse({"ready": True, "database": "connected"}, status_code=200)
    return JSONResponse({"ready": False, "database": "disconnected"}, status_code=503)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", 5000)), reload=True)
