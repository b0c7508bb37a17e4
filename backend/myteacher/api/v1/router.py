from fastapi import APIRouter

from myteacher.api.v1.endpoints import (
    admin,
    alerts,
    auth,
    behavior,
    decisions,
    disputes,
    forms,
    generation,
    goals,
    meetings,
    plans,
    reviews,
    rule_packs,
    scheduled_services,
    services,
    signatures,
    students,
    versions,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(admin.router)
api_router.include_router(students.router)

# Plans and everything hanging off a plan
api_router.include_router(plans.router)
api_router.include_router(goals.router)
api_router.include_router(services.router)
api_router.include_router(scheduled_services.router)
api_router.include_router(behavior.router)
api_router.include_router(versions.router)
api_router.include_router(signatures.router)
api_router.include_router(decisions.router)
api_router.include_router(generation.router)

# Compliance
api_router.include_router(rule_packs.router)
api_router.include_router(meetings.router)
api_router.include_router(reviews.router)
api_router.include_router(alerts.router)
api_router.include_router(disputes.router)

# Form configuration
api_router.include_router(forms.router)
