# API endpoints
from . import (
    auth, admin, students, plans, goals, services, versions, signatures, decisions,
    rule_packs, meetings, reviews, alerts, disputes, generation,
)

__all__ = [
    "auth", "admin", "students", "plans", "goals", "services", "versions", "signatures", "decisions",
    "rule_packs", "meetings", "reviews", "alerts", "disputes", "generation",
]
