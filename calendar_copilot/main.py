"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from calendar_copilot.config import settings
from calendar_copilot.database import Base, engine
from calendar_copilot.errors import InvalidInputError
from calendar_copilot.integrations.token_cache import TokenCache

# Import routers
from calendar_copilot.routers import calendar, chat

# Import all models so Base.metadata knows about them
from calendar_copilot.models.event import CalendarEvent  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Calendar Copilot",
    description="Calendar assistant backend — free/busy search, week layout and a tool-calling agent",
    version="0.1.0",
)

# Shared across requests; the Amadeus token outlives a single chat turn.
app.state.flight_token_cache = TokenCache()

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Calendar-Modified", "X-Draft-Data"],
)

# Register routers
app.include_router(calendar.router, prefix="/api/calendar", tags=["Calendar"])
app.include_router(chat.router, prefix="/api", tags=["Chat"])


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
