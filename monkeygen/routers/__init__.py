from monkeygen.routers.analyze import router as analyze_router
from monkeygen.routers.generate import router as generate_router
from monkeygen.routers.studio import router as studio_router

__all__ = [
    "analyze_router",
    "generate_router",
    "studio_router",
]
