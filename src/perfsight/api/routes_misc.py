"""
Miscellaneous route handlers.

Endpoints:
- GET /health - health check
- GET /about - API documentation
"""

import logging
from typing import Any

from fastapi import APIRouter

from perfsight.api.shared import MAX_MATCHES_PER_REQUEST, __version__

logger = logging.getLogger(__name__)

router = APIRouter(tags=["misc"])


@router.get("/health")
async def health() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


@router.get("/about")
async def about() -> dict[str, Any]:
    """Information about the API and the analysis components."""
    from perfsight.core.config import get_config
    from perfsight.core.constants import METRIC_LABELS, AnalysisComponent

    config = get_config()
    return {
        "name": "PerfSight",
        "version": __version__,
        "endpoints": {
            "POST /api/analysis/enhanced": "Personal performance analysis over a match history",
            "GET /health": "Health check",
        },
        "components": [c.value for c in AnalysisComponent],
        "metrics": {m.value: label for m, label in METRIC_LABELS.items()},
        "limits": {
            "min_matches": config.analysis.min_matches,
            "max_matches": min(config.analysis.max_matches, MAX_MATCHES_PER_REQUEST),
        },
    }
