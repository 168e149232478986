from __future__ import annotations

from bookledger.api.routes import auth, health, library, tasks
from fastapi import APIRouter

api_router = APIRouter()

# Keep this list in the order you want routes registered.
for _mod in (health, auth, tasks, library):
    api_router.include_router(_mod.router)
