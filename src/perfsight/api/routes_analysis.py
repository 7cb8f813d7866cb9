"""
Analysis route handlers.

Endpoints:
- POST /api/analysis/enhanced - personal performance analysis over a match history
"""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from perfsight.api.shared import EnhancedAnalysisRequest, validate_player_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analysis"])


@router.post("/api/analysis/enhanced")
async def enhanced_analysis(request: EnhancedAnalysisRequest) -> Any:
    """
    Run the enhanced performance analysis over the supplied match history.

    Matches must be ordered oldest first. Returns 422 with a structured body
    when fewer matches than the configured minimum are supplied.
    """
    player_id = validate_player_id(request.player_id)

    from perfsight.analysis.engine import (
        EnhancedAnalysisEngine,
        assess_data_quality,
        filter_components,
        normalize_components,
    )
    from perfsight.analysis.models import ExtractionError, InsufficientData
    from perfsight.core.config import get_config

    try:
        components = normalize_components(request.components)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    engine = EnhancedAnalysisEngine(get_config())
    generated_at = datetime.now(UTC)
    try:
        result = engine.analyze(
            request.matches,
            player_id,
            premier_rating=request.premier_rating,
            generated_at=generated_at,
        )
    except ExtractionError as e:
        logger.warning(f"Rejected match history for {player_id}: {e}")
        raise HTTPException(status_code=422, detail=str(e)) from e

    if isinstance(result, InsufficientData):
        return JSONResponse(status_code=422, content=result.to_dict())

    component_names = [c.value for c in components]
    logger.info(
        f"Enhanced analysis served for {player_id}: {result.match_count} matches, "
        f"components={component_names}"
    )
    return {
        "type": "enhanced_analysis",
        "player_id": player_id,
        "components": component_names,
        "match_count": result.match_count,
        "analysis": filter_components(result, component_names),
        "data_quality": assess_data_quality(result),
        "generated_at": generated_at.isoformat(),
    }
