"""
API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import auth, users

api_router = APIRouter()

# Login, logout, current session
api_router.include_router(auth.router)

# Identity administration
api_router.include_router(users.router)
