"""
Deep Research Router

Handles POST /ai/deep-research: runs the market validation pipeline for one
idea and returns the report JSON (camelCase).
"""

import logging
import time

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ..agents.deep_research_agent import MarketValidationPipeline
from ..errors import ConfigurationError, RateLimitError
from ..schemas.market_validation_schema import DeepResearchRequest

logger = logging.getLogger(__name__)

TITLE_MIN_LENGTH = 10

router = APIRouter(
    prefix="/ai/deep-research",
    tags=["Deep Research"],
    responses={
        400: {"description": "Invalid idea (title too short)"},
        429: {"description": "Upstream AI rate limit reached"},
        500: {"description": "Internal server error during deep research"},
    },
)


def get_pipeline() -> MarketValidationPipeline:
    """Fresh pipeline per request, built from the current environment."""
    return MarketValidationPipeline()


@router.post(
    "",
    status_code=status.HTTP_200_OK,
    summary="Deep Market Validation",
    response_description="Market validation report with hypotheses, signals and next steps",
)
async def deep_research(
    request: DeepResearchRequest,
    pipeline: MarketValidationPipeline = Depends(get_pipeline),
):
    """
    Run deep market research for a startup idea.

    Four sequential AI stages; expect several minutes for the web-search steps.
    """
    if not request.title or len(request.title) < TITLE_MIN_LENGTH:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": f"Title must be at least {TITLE_MIN_LENGTH} characters"},
        )

    start_time = time.perf_counter()
    logger.info("[TIMING] deep_research_endpoint: START")

    try:
        result = await pipeline.run(request.to_idea(), request.language)
    except RateLimitError as e:
        logger.warning("[DEEP] Rate limited, retry after %ss", e.retry_after_seconds)
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            headers={"Retry-After": str(e.retry_after_seconds)},
            content={
                "error": "AI_RATE_LIMIT_EXCEEDED",
                "retryAfterSeconds": e.retry_after_seconds,
                "details": e.details,
            },
        )
    except ConfigurationError:
        logger.error("[DEEP] OPENAI_API_KEY is not configured")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "AI service not configured"},
        )
    except Exception as e:
        total_duration = (time.perf_counter() - start_time) * 1000
        logger.exception(
            "[TIMING] deep_research_endpoint: ERROR after %.0fms — %s", total_duration, str(e)[:100]
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    total_duration = (time.perf_counter() - start_time) * 1000
    logger.info("[TIMING] deep_research_endpoint: END — duration=%.0fms", total_duration)
    return JSONResponse(content=result.model_dump(mode="json", by_alias=True))


@router.get(
    "/health",
    summary="Health Check",
    description="Check if the deep research service is running",
    response_description="Health status",
)
async def health_check():
    """Simple health check endpoint."""
    return {"status": "healthy", "service": "deep-research"}
