"""
Pydantic Data Transfer Objects (DTOs) for the trends HTTP API.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from subreddit_trends.models import Post, ResolutionResult


class ResolutionDTO(BaseModel):
    """Response body of the resolve endpoint."""

    exists: bool
    canonical: str
    accessibility: str
    source: str
    subreddit_type: Optional[str] = None
    url: Optional[str] = None
    http_status: Optional[int] = None

    @classmethod
    def from_result(cls, result: ResolutionResult) -> "ResolutionDTO":
        return cls(**result.to_dict())


class PostDTO(BaseModel):
    """One post in the trending response."""

    title: str
    url: Optional[str] = None
    permalink: Optional[str] = None
    score: Optional[int] = None
    author: Optional[str] = None
    created_at: Optional[datetime] = None
    num_comments: Optional[int] = None
    provenance: str

    @classmethod
    def from_post(cls, post: Post) -> "PostDTO":
        return cls(
            title=post.title,
            url=post.url,
            permalink=post.permalink,
            score=post.score,
            author=post.author,
            created_at=post.created_at,
            num_comments=post.num_comments,
            provenance=post.provenance.value,
        )


class ErrorDTO(BaseModel):
    """Error body for failed requests."""

    error: str
    canonical: Optional[str] = None
    retry_after: Optional[int] = None
