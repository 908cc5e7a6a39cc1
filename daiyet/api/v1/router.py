"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from daiyet.api.v1 import (
    admin,
    bookings,
    event_types,
    meal_plans,
    metrics,
    onboarding,
    payments,
    paystack,
    providers,
    session_notes,
    users,
)

api_router = APIRouter()

# Users
api_router.include_router(users.router, prefix="/users", tags=["Users"])

# Onboarding
api_router.include_router(onboarding.router, prefix="/onboarding", tags=["Onboarding"])

# Provider enrollment and profiles
api_router.include_router(providers.router, tags=["Providers"])

# Event types
api_router.include_router(event_types.router, prefix="/event-types", tags=["Event Types"])

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Payments
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])

# Paystack checkout + webhook
api_router.include_router(paystack.router, prefix="/paystack", tags=["Paystack"])

# Session notes
api_router.include_router(session_notes.router, prefix="/session-notes", tags=["Session Notes"])

# Meal plans
api_router.include_router(meal_plans.router, prefix="/meal-plans", tags=["Meal Plans"])

# Admin
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])

# Metrics
api_router.include_router(metrics.router, prefix="/metrics", tags=["Metrics"])
