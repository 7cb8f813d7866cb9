"""
Shared utilities for the PerfSight API.

Contains input validation, request size limits, and the request models used
by the route modules.
"""

import logging
import re
from typing import Any

from fastapi import HTTPException
from pydantic import BaseModel, Field

from perfsight import __version__  # noqa: F401
from perfsight.core.constants import AnalysisComponent

logger = logging.getLogger(__name__)

# =============================================================================
# Request Limits
# =============================================================================

MAX_MATCHES_PER_REQUEST = 50

# =============================================================================
# Input Validation Patterns
# =============================================================================

PLAYER_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_.-]{1,64}$")


def validate_player_id(player_id: str) -> str:
    """Validate player_id format. Raises HTTPException if invalid."""
    if not player_id or not PLAYER_ID_PATTERN.match(player_id):
        raise HTTPException(
            status_code=400,
            detail="Invalid player_id: must be alphanumeric, 1-64 characters",
        )
    return player_id


# =============================================================================
# Request Models
# =============================================================================


class EnhancedAnalysisRequest(BaseModel):
    """Request body for POST /api/analysis/enhanced."""

    player_id: str = Field(..., description="Player identifier (Steam ID or handle)")
    premier_rating: int | None = Field(
        None, ge=0, le=40000, description="Current Premier rating used to pick the tier"
    )
    matches: list[dict[str, Any]] = Field(
        ...,
        max_length=MAX_MATCHES_PER_REQUEST,
        description="Chronological (oldest first) per-match stat records",
    )
    components: list[str] = Field(
        default_factory=lambda: [AnalysisComponent.ALL.value],
        description="Result sections to include: "
        + ", ".join(c.value for c in AnalysisComponent),
    )
