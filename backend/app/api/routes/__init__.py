# API Routes Module
from app.api.routes import (
    access,
    checkout,
    plans,
    team,
    webhooks,
)

__all__ = [
    "access",
    "checkout",
    "plans",
    "team",
    "webhooks",
]
