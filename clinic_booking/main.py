from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
import time
import logging

from .api.v1.appointments import router as appointments_router
from .api.v1.directory import router as directory_router
from .core.config import settings
from .core.database import init_db
from .core.exceptions import SchedulingError, TransientError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Clinic appointment booking with double-booking protection",
    openapi_url="/api/v1/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

if not settings.TESTING:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=["localhost", "127.0.0.1", "*.localhost"]
    )

@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({process_time:.4f}s)")
    return response

@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    headers = {"Retry-After": "1"} if isinstance(exc, TransientError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

@app.exception_handler(404)
async def not_found_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=404,
        content={
            "error": "Not Found",
            "message": "The requested resource was not found",
            "path": str(request.url.path)
        }
    )

@app.exception_handler(500)
async def internal_error_handler(request: Request, exc: Exception):
    logger.error(f"Internal server error: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error", "message": "An unexpected error occurred"}
    )

app.include_router(appointments_router, prefix="/api/v1")
app.include_router(directory_router, prefix="/api/v1")

@app.on_event("startup")
async def startup_event():
    """Create missing tables before serving bookings."""
    init_db()
    logger.info("Clinic Booking Service ready")

@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": settings.VERSION}

@app.get("/api/v1/info")
async def api_info():
    """Where each resource lives."""
    return {
        "name": settings.APP_NAME,
        "version": settings.VERSION,
        "endpoints": {
            "appointments": "/api/v1/appointments",
            "clinics": "/api/v1/clinics",
            "doctors": "/api/v1/doctors",
            "patients": "/api/v1/patients",
            "specialities": "/api/v1/specialities",
            "search": "/api/v1/search/doctors",
        }
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("clinic_booking.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
