"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from ehgezli.api.routes import auth, bookings, branches, restaurants, saved_branches, users

api_router = APIRouter(prefix="/api")
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(restaurants.router)
api_router.include_router(branches.router)
api_router.include_router(bookings.router)
api_router.include_router(saved_branches.router)
