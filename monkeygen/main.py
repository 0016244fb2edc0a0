import logging
import sys
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, WebSocket
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from monkeygen import __version__
from monkeygen.config import settings
from monkeygen.errors import InvalidInputError, StudioError
from monkeygen.routers import analyze_router, generate_router, studio_router
from monkeygen.services.openai_images import openai_service
from monkeygen.websocket import websocket_endpoint

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)],
)

# Set specific loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting MonkeyGen...")
    logger.info(f"OpenAI URL: {settings.openai_base_url}")
    logger.info(f"Vision model (style): {settings.vision_model}")
    logger.info(f"Image model (variations): {settings.image_model}")

    if openai_service.is_configured:
        logger.info("OPENAI_API_KEY: set")
    else:
        logger.warning("OPENAI_API_KEY: NOT SET - analyze and generate will fail")

    if settings.generation_api_url:
        logger.info(f"Studio sessions use remote boundary at {settings.generation_api_url}")

    logger.info("Startup complete")
    yield
    logger.info("Shutting down...")


app = FastAPI(
    title="MonkeyGen",
    description="Trait variations of a base cartoon character, powered by gpt-image-1",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StudioError)
async def studio_error_handler(request: Request, exc: StudioError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid input")
    else:
        message = "Invalid input"
    error = InvalidInputError(message)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


app.include_router(analyze_router)
app.include_router(generate_router)
app.include_router(studio_router)


@app.get("/")
async def root():
    return {
        "name": "MonkeyGen API",
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Check that the OpenAI key is set and accepted."""
    openai_ok = await openai_service.health_check()
    return {
        "status": "ok" if openai_ok else "degraded",
        "services": {
            "openai": {
                "status": "ok" if openai_ok else "unavailable",
                "configured": openai_service.is_configured,
                "url": settings.openai_base_url,
                "vision_model": settings.vision_model,
                "image_model": settings.image_model,
            },
        },
    }


@app.websocket("/ws/{session_id}")
async def websocket_route(websocket: WebSocket, session_id: str):
    await websocket_endpoint(websocket, session_id)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "monkeygen.main:app",
        host="0.0.0.0",
        port=1443,
        reload=True,
        log_level="info",
    )
