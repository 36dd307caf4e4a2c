"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import (
    auth, users, reservations, records, license_plates, statistics, admin
)

router = APIRouter()

# Authentication and profile
router.include_router(auth.router)
router.include_router(users.router)

# Reservations and settlement
router.include_router(reservations.router)
router.include_router(records.router)
router.include_router(license_plates.router)

# Dashboards
router.include_router(statistics.router)

# Admin
router.include_router(admin.router)
