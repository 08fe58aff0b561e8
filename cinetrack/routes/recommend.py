from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from cinetrack.database import get_db
from cinetrack.utils.dependencies import get_current_user_id
from cinetrack.utils.exceptions import ForbiddenError
from cinetrack.schemas.recommendation import RecommendRequest, RecommendResponse
from cinetrack.services.recommendation_service import RecommendationService

router = APIRouter(tags=["Recommendations"])


@router.post("/recommend", response_model=RecommendResponse)
def recommend(
    payload: RecommendRequest,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Short personalized blurb about a cached movie

    - **tmdb_id**: movie to pitch; 404 if it is not cached
    - **user_id**: whose recent watchlist seeds the blurb
    """
    if not payload.tmdb_id or not payload.user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing tmdb_id or user_id")
    if payload.user_id != current_user_id:
        raise ForbiddenError()

    return {"recommendation": RecommendationService.get_blurb(db, payload.user_id, payload.tmdb_id)}
