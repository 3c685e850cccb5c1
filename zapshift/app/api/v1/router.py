"""
Route table: one router per resource.
"""

from fastapi import APIRouter
from zapshift.app.api.v1.endpoints import admin, auth, parcels, payments, riders, users

router = APIRouter()

# Identity (sign-out, whoami)
router.include_router(auth.router)

# Parcel lifecycle
router.include_router(parcels.router)
router.include_router(payments.router)

# People
router.include_router(users.router)
router.include_router(riders.router)

# Admin
router.include_router(admin.router)
