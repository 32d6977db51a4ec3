"""API v1 router configuration."""

from fastapi import APIRouter

from clinic_queue.api.v1.endpoints import appointments, auth, clinic_users, health, rooms

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(rooms.router, prefix="/rooms", tags=["Rooms"])
api_router.include_router(clinic_users.router, prefix="/clinics", tags=["Clinic Members"])
