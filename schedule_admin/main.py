# schedule_admin/main.py
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from schedule_admin.config import get_settings
from schedule_admin.db.session import engine, init_db
from schedule_admin.exceptions import CapacityEngineError
from schedule_admin.logging_config import get_logger, setup_logging
from schedule_admin.routers import availability, bookings, thresholds

setup_logging()
logger = get_logger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# Routers
app.include_router(availability.router, prefix="/availability", tags=["availability"])
app.include_router(thresholds.router)
app.include_router(bookings.router)


@app.exception_handler(CapacityEngineError)
async def capacity_engine_exception_handler(request: Request, exc: CapacityEngineError):
    logger.warning(
        "Capacity engine error %s on %s: %s",
        exc.error_code,
        request.url.path,
        exc.message,
    )
    error_dict = exc.to_dict()
    error_dict["timestamp"] = datetime.utcnow().isoformat() + "Z"
    return JSONResponse(status_code=exc.status_code, content=error_dict)


@app.get("/health")
def health_check():
    db_status = "ok"
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Health check could not reach the database")
        db_status = "error"

    return {
        "status": "ok" if db_status == "ok" else "degraded",
        "app": settings.APP_NAME,
        "env": settings.ENV,
        "database": db_status,
    }
