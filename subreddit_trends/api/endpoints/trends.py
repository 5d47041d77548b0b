"""
Resolve and trending endpoints.

Failures from the pipeline map onto status codes: not found 404, rate
limited 429 (with Retry-After), timeout 504, unavailable 503.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from subreddit_trends.api.dtos import ErrorDTO, PostDTO, ResolutionDTO
from subreddit_trends.errors import RateLimited, SubredditNotFound, Unavailable, UpstreamTimeout
from subreddit_trends.service import TrendsService

router = APIRouter()
logger = logging.getLogger(__name__)


def get_service(request: Request) -> TrendsService:
    """Dependency returning the service wired at application startup."""
    return request.app.state.service


def _error(status_code: int, body: ErrorDTO, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True), headers=headers)


@router.get("/api/resolve/{subreddit}", response_model=ResolutionDTO)
async def resolve(subreddit: str, service: TrendsService = Depends(get_service)):
    """Resolve user-typed subreddit text to its canonical name."""
    info = await service.resolve(subreddit)
    logger.info(f"RESOLVE {subreddit} -> {info.canonical} ({info.source}, {info.accessibility.value})")
    dto = ResolutionDTO.from_result(info)
    if not info.exists:
        return JSONResponse(status_code=404, content=dto.model_dump())
    return dto


@router.get("/api/trending/{subreddit}", response_model=List[PostDTO])
async def trending(
    subreddit: str,
    timeframe: Optional[str] = Query(None, description="Ranking window, e.g. day or week"),
    service: TrendsService = Depends(get_service),
):
    """Top posts for a subreddit, resolving its canonical name first."""
    timeframe = timeframe or service.config.fetch.default_timeframe
    try:
        posts = await service.trending(subreddit, timeframe)
    except SubredditNotFound:
        return _error(404, ErrorDTO(error=f"Subreddit \"{subreddit}\" not found"))
    except RateLimited as e:
        return _error(
            429,
            ErrorDTO(error="Rate limited by Reddit, try again later", retry_after=e.retry_after),
            headers={"Retry-After": str(e.retry_after)},
        )
    except UpstreamTimeout as e:
        return _error(504, ErrorDTO(error=str(e)))
    except Unavailable as e:
        return _error(
            503,
            ErrorDTO(error=f"r/{e.canonical} is not readable from this server", canonical=e.canonical),
        )

    logger.info(f"Fetched {len(posts)} posts for {subreddit} ({timeframe})")
    return [PostDTO.from_post(post) for post in posts]
