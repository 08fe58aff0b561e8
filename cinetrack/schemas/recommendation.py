from pydantic import BaseModel, Field
from typing import Optional


class RecommendRequest(BaseModel):
    """Body of POST /recommend"""
    tmdb_id: Optional[int] = Field(None, description="TMDB movie ID (must be cached)")
    user_id: Optional[str] = Field(None, description="Owner; must match the bearer token subject")


class RecommendResponse(BaseModel):
    recommendation: str
