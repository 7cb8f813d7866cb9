"""
PerfSight Web API

FastAPI application serving personal performance analysis.

This package exposes:
- app: The FastAPI application (used by uvicorn and server.py)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from perfsight.api.shared import __version__

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# =============================================================================
# FastAPI App Creation
# =============================================================================

app = FastAPI(
    title="PerfSight API",
    description=(
        "CS2 personal performance analytics - baselines, tilt and flow detection, "
        "performance state, metric correlations and predictive alerts"
    ),
    version=__version__,
)

# =============================================================================
# CORS Configuration
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =============================================================================
# Global Exception Handler
# =============================================================================


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler to prevent information disclosure."""
    logger.exception(f"Unhandled exception for {request.method} {request.url.path}")

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": "An unexpected error occurred. Please try again later.",
        },
    )


# =============================================================================
# Include Route Modules
# =============================================================================

from perfsight.api.routes_analysis import router as analysis_router  # noqa: E402
from perfsight.api.routes_misc import router as misc_router  # noqa: E402

app.include_router(analysis_router)
app.include_router(misc_router)
