from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from src.core.config import get_settings
from src.core.errors import BookingError, error_payload
from src.routers.availability import router as availability_router
from src.routers.health import router as health_router
from src.routers.reservations import router as reservations_router
from src.routers.seat_blocks import router as seat_blocks_router
from src.routers.venue_hours import router as venue_hours_router

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Venue reservation marketplace API - Opening hours, live availability and conflict-free seat and table booking.",
    version="0.1.0",
)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    """Render booking rejections as {"error", "code"} with the mapped status."""
    logger.info(f"Booking rejected ({exc.reason.value}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_payload(exc))


# Global exception handler for unhandled errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected server errors with structured response."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "request_id": request.headers.get("X-Request-ID"),
        }
    )

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for now
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health_router)
app.include_router(venue_hours_router, prefix="/api")
app.include_router(availability_router, prefix="/api")
app.include_router(reservations_router, prefix="/api")
app.include_router(seat_blocks_router, prefix="/api")

@app.get("/")
def read_root():
    return {
        "message": "Welcome to Perch API",
        "docs": "/docs",
        "health": "/health"
    }
