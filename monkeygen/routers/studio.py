import logging
from fastapi import APIRouter, Depends, Response

from monkeygen.config import settings
from monkeygen.errors import (
    InvalidInputError,
    NotFoundError,
    OutcomeUnavailableError,
    StyleAnalysisError,
    UnknownTraitError,
)
from monkeygen.models.schemas import (
    ExportResponse,
    OutcomeView,
    ProgressState,
    ProgressView,
    RunRequest,
    RunState,
    SessionCreate,
    SessionDetail,
    SessionResponse,
    TraitCategory,
    TraitsResponse,
)
from monkeygen.services.images import load_base_image_b64
from monkeygen.services.storage import StorageService, get_storage_service
from monkeygen.services.studio import StudioManager, StudioSession, get_studio_manager
from monkeygen.services.traits import (
    COUNT_CHOICES,
    DEFAULT_ACTIVE_TRAITS,
    DEFAULT_COUNT,
    trait_registry,
)
from monkeygen.websocket import manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["studio"])


def _session_response(session: StudioSession) -> SessionResponse:
    ctx = session.context
    return SessionResponse(
        id=session.id,
        created_at=session.created_at,
        media_type=ctx.base_image.media_type,
        image_bytes=len(ctx.base_image.data),
        state=ctx.state,
        style_description=ctx.style_cache.get(ctx.base_image.fingerprint),
    )


def _session_detail(session: StudioSession) -> SessionDetail:
    ctx = session.context
    gallery = ctx.gallery
    return SessionDetail(
        id=session.id,
        created_at=session.created_at,
        state=ctx.state,
        run_id=ctx.run_id,
        style_description=ctx.style_cache.get(ctx.base_image.fingerprint),
        progress=ProgressView(
            completed=ctx.progress.completed,
            total=ctx.progress.total,
            status=ctx.progress.status,
            percent=ctx.progress.percent,
        ),
        outcomes=[
            OutcomeView(
                index=o.index,
                status=o.status,
                prompt=o.prompt,
                image_src=o.image.src if o.image else None,
                error=o.error,
            )
            for o in gallery.outcomes
        ],
        generated_count=gallery.succeeded_count,
        failed_count=gallery.failed_count,
        estimated_cost=round(gallery.succeeded_count * settings.cost_per_image, 2),
        last_error=ctx.last_error,
    )


@router.get("/traits", response_model=TraitsResponse)
async def list_traits():
    """Trait categories, their pools and the generation defaults."""
    return TraitsResponse(
        categories=[
            TraitCategory(
                id=category,
                label=trait_registry.label(category),
                fragments=list(trait_registry.pool(category)),
            )
            for category in trait_registry.list_categories()
        ],
        default_active=list(DEFAULT_ACTIVE_TRAITS),
        count_choices=list(COUNT_CHOICES),
        default_count=DEFAULT_COUNT,
        cost_per_image=settings.cost_per_image,
    )


@router.post("/studio/sessions", response_model=SessionResponse)
async def create_session(
    data: SessionCreate,
    studio: StudioManager = Depends(get_studio_manager),
):
    """Open a studio session for a base image."""
    image = load_base_image_b64(data.image_base64, data.mime_type)
    session = studio.create(image)
    return _session_response(session)


@router.get("/studio/sessions/{session_id}", response_model=SessionDetail)
async def get_session(
    session_id: str,
    studio: StudioManager = Depends(get_studio_manager),
):
    """Run state, progress and gallery of a session."""
    return _session_detail(studio.get(session_id))


@router.put("/studio/sessions/{session_id}/image", response_model=SessionResponse)
async def replace_image(
    session_id: str,
    data: SessionCreate,
    studio: StudioManager = Depends(get_studio_manager),
):
    """Load a new base image. The cached style description is dropped."""
    session = studio.get(session_id)
    image = load_base_image_b64(data.image_base64, data.mime_type)
    session.orchestrator.load_image(image)
    await manager.broadcast_log(session_id, "New base image loaded", "info", "upload")
    return _session_response(session)


@router.post("/studio/sessions/{session_id}/runs", response_model=SessionDetail)
async def run_generation(
    session_id: str,
    data: RunRequest,
    studio: StudioManager = Depends(get_studio_manager),
):
    """
    Generate ``count`` variations of the session's base image.

    Progress and each finished item are pushed over the session websocket
    while the request is open. Posting a new run while one is active
    supersedes it: the older request returns early and records nothing else.
    """
    session = studio.get(session_id)
    traits = data.traits if data.traits is not None else list(DEFAULT_ACTIVE_TRAITS)
    try:
        trait_registry.check(traits)
    except UnknownTraitError as e:
        raise InvalidInputError(str(e))

    async def on_progress(progress: ProgressState):
        await manager.broadcast_progress(session_id, progress)

    await manager.broadcast_log(
        session_id, f"Starting run: {data.count} variation(s)", "info", "run"
    )

    try:
        async for outcome in session.orchestrator.run(
            data.count,
            traits,
            extra_prompt=data.extra_prompt,
            on_progress=on_progress,
        ):
            await manager.broadcast_outcome(session_id, outcome)
            if outcome.image:
                await manager.broadcast_log(
                    session_id, f"Generated #{outcome.index:03d}", "success", "generate"
                )
            else:
                await manager.broadcast_log(
                    session_id, f"#{outcome.index:03d} failed: {outcome.error}", "error", "generate"
                )
    except StyleAnalysisError as e:
        await manager.broadcast_error(session_id, e.message)
        raise

    detail = _session_detail(session)
    if detail.state == RunState.COMPLETED:
        await manager.broadcast_complete(
            session_id,
            {"generated": detail.generated_count, "failed": detail.failed_count},
        )
    return detail


@router.post("/studio/sessions/{session_id}/stop")
async def stop_run(
    session_id: str,
    studio: StudioManager = Depends(get_studio_manager),
):
    """Abandon the active run; the image in flight is discarded."""
    session = studio.get(session_id)
    stopped = session.orchestrator.stop()
    if stopped:
        await manager.broadcast_log(session_id, "Run stopped", "warning", "stop")
    return {"session_id": session_id, "stopped": stopped}


@router.get("/studio/sessions/{session_id}/results/{index}/download")
async def download_result(
    session_id: str,
    index: int,
    studio: StudioManager = Depends(get_studio_manager),
    storage: StorageService = Depends(get_storage_service),
):
    """One generated image as a PNG attachment named nft-<index>.png."""
    session = studio.get(session_id)
    outcome = session.context.gallery.get(index)
    if outcome is None:
        raise NotFoundError(f"No result #{index}")
    if outcome.image is None:
        raise OutcomeUnavailableError(f"Result #{index} has no image")

    filename = storage.get_result_filename(index)
    content = await storage.image_bytes(outcome.image)
    return Response(
        content=content,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/studio/sessions/{session_id}/export", response_model=ExportResponse)
async def export_results(
    session_id: str,
    studio: StudioManager = Depends(get_studio_manager),
    storage: StorageService = Depends(get_storage_service),
):
    """Write every generated image of the session to the outputs directory."""
    session = studio.get(session_id)
    files = []
    for outcome in session.context.gallery.outcomes:
        if outcome.image is None:
            continue
        path = await storage.save_image(
            session.id, outcome.image, storage.get_result_filename(outcome.index)
        )
        files.append(str(path))
    return ExportResponse(session_id=session.id, files=files)


@router.delete("/studio/sessions/{session_id}")
async def delete_session(
    session_id: str,
    studio: StudioManager = Depends(get_studio_manager),
    storage: StorageService = Depends(get_storage_service),
):
    """Close a session and delete its exported files."""
    studio.delete(session_id)
    storage.delete_session(session_id)
    return {"status": "deleted", "session_id": session_id}
