"""
API module for FastAPI routes.
"""
from fastapi import APIRouter

from wav.api.routes import analytics, cards, games, health, trades, unbox, users

api_router = APIRouter()

# Include all route modules
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(unbox.router, prefix="/unbox", tags=["Unbox"])
api_router.include_router(cards.router, prefix="/cards", tags=["Cards"])
api_router.include_router(trades.router, prefix="/trades", tags=["Trades"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(games.router, prefix="/games", tags=["Games"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])
