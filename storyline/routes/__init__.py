# Create a main router that includes all the individual routers
from storyline.metrics.router import MetricsRouter

from .chapters import router as chapters_router
from .credits import router as credits_router
from .projects import router as projects_router
from .settings import router as settings_router

router = MetricsRouter()

# Include all routers
router.include_router(projects_router)
router.include_router(chapters_router)
router.include_router(credits_router)
router.include_router(settings_router)
