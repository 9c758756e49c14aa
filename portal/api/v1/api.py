"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from portal.api.v1.endpoints import (attendance, auth, leave, profile,
                                     settings, system)

api_router = APIRouter()

# Auth (login, refresh, user management)
api_router.include_router(auth.router)

# Check-in / check-out, breaks, namaz, tasks, history
api_router.include_router(attendance.router)

# Leave applications, reviews, balances
api_router.include_router(leave.router)

# Employee profile, history entries, account settings
api_router.include_router(profile.router)

# Attendance policy (admin)
api_router.include_router(settings.router)

# Health, status
api_router.include_router(system.router)
