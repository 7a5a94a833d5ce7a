"""API route handlers."""

from .swipes import router as swipes_router
from .candidates import router as candidates_router
from .credits import router as credits_router
from .matches import router as matches_router
from .notifications import router as notifications_router
