"""
Import all models to ensure they are registered with SQLAlchemy
"""
from cinetrack.models.movie import Movie
from cinetrack.models.watchlist import WatchlistEntry

__all__ = [
    "Movie",
    "WatchlistEntry",
]
