"""API route modules."""

from workshop.api.routes.health import router as health_router
from workshop.api.routes.materials import router as materials_router
from workshop.api.routes.movements import router as movements_router
from workshop.api.routes.purchases import router as purchases_router

__all__ = [
    "health_router",
    "materials_router",
    "movements_router",
    "purchases_router",
]
