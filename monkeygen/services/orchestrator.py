"""
Generation Orchestrator

Drives one run: make sure the base image has a style description (asking
the style analyzer at most once per loaded image), then generate the
requested variations one after another. A failed variation is recorded and
the run moves on; only a failed style analysis aborts the run.
"""
import logging
from typing import AsyncIterator, Awaitable, Callable, Iterable, Protocol

from monkeygen.errors import InvalidInputError, StyleAnalysisError
from monkeygen.models.schemas import (
    BaseImage,
    GeneratedImage,
    ProgressState,
    RunState,
    VariationOutcome,
)
from monkeygen.services.gallery import ResultGallery
from monkeygen.services.prompt_composer import PromptComposer
from monkeygen.services.style_cache import StyleCache

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressState], Awaitable[None]]

STATUS_ANALYZING = "Analyzing style..."
STATUS_STYLE_FAILED = "Style analysis failed"
STATUS_DONE = "Done!"
STATUS_STOPPED = "Stopped"


def status_generating(index: int) -> str:
    return f"Generating #{index:03d}..."


def status_generated(index: int) -> str:
    return f"Generated #{index:03d} ✓"


def status_failed(index: int) -> str:
    return f"Failed #{index:03d}"


class StyleAnalyzer(Protocol):
    async def analyze_style(self, image: BaseImage) -> str: ...


class VariationGenerator(Protocol):
    async def generate_variation(self, image: BaseImage, prompt: str) -> GeneratedImage: ...


class StudioContext:
    """Everything a run reads and writes, owned by one orchestrator."""

    def __init__(self):
        self.base_image: BaseImage | None = None
        self.style_cache = StyleCache()
        self.gallery = ResultGallery()
        self.progress = ProgressState()
        self.state = RunState.IDLE
        self.run_id = 0
        self.last_error: str | None = None


class GenerationOrchestrator:
    def __init__(
        self,
        analyzer: StyleAnalyzer,
        generator: VariationGenerator,
        composer: PromptComposer | None = None,
        context: StudioContext | None = None,
    ):
        self.analyzer = analyzer
        self.generator = generator
        self.composer = composer or PromptComposer()
        self.context = context or StudioContext()

    def load_image(self, image: BaseImage) -> None:
        """Make ``image`` the base image. The only place the style cache is invalidated."""
        self.context.base_image = image
        self.context.style_cache.invalidate()
        logger.info(f"[orchestrator] Base image loaded ({image.media_type}, {len(image.data)} bytes)")

    @property
    def is_running(self) -> bool:
        return self.context.state in (RunState.ANALYZING_STYLE, RunState.GENERATING)

    def stop(self) -> bool:
        """
        Abandon the active run. The call in flight is not interrupted; its
        result is dropped and nothing further is recorded. The item that
        was in flight is marked failed with reason "Stopped".
        """
        if not self.is_running:
            return False
        ctx = self.context
        ctx.run_id += 1
        ctx.state = RunState.IDLE
        for outcome in ctx.gallery.outcomes:
            if not outcome.resolved:
                ctx.gallery.resolve(outcome.index, error=STATUS_STOPPED)
        ctx.progress = ctx.progress.model_copy(update={"status": STATUS_STOPPED})
        logger.info(f"[orchestrator] Run {ctx.run_id - 1} stopped")
        return True

    def _is_current(self, run_id: int) -> bool:
        if run_id == self.context.run_id:
            return True
        logger.info(f"[orchestrator] Run {run_id} superseded by run {self.context.run_id}")
        return False

    async def run(
        self,
        requested_count: int,
        active_categories: Iterable[str],
        extra_prompt: str | None = None,
        base_image: BaseImage | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> AsyncIterator[VariationOutcome]:
        """
        Generate ``requested_count`` variations, yielding each outcome once
        it is resolved.

        Raises InvalidInputError / UnknownTraitError before any network call,
        and StyleAnalysisError if the style cannot be described (no outcome
        is produced in that case). Starting another run makes this one stop
        at its next suspension point without writing anything further.
        """
        ctx = self.context

        if base_image is not None and (
            ctx.base_image is None or ctx.base_image.fingerprint != base_image.fingerprint
        ):
            self.load_image(base_image)

        image = ctx.base_image
        if image is None:
            raise InvalidInputError("No base image loaded")
        if requested_count < 1:
            raise InvalidInputError("Requested count must be at least 1")

        categories = list(active_categories)
        self.composer.registry.check(categories)

        ctx.run_id += 1
        run_id = ctx.run_id
        ctx.gallery.reset(requested_count)
        ctx.last_error = None

        async def report(completed: int, status: str):
            ctx.progress = ProgressState(completed=completed, total=requested_count, status=status)
            if on_progress:
                await on_progress(ctx.progress)

        logger.info(
            f"[orchestrator] Run {run_id}: {requested_count} variation(s), "
            f"traits={categories or 'none'}"
        )

        # Step 1: style description, cached per image
        style = ctx.style_cache.get(image.fingerprint)
        if style is None:
            ctx.state = RunState.ANALYZING_STYLE
            await report(0, STATUS_ANALYZING)
            if not self._is_current(run_id):
                return
            try:
                style = await self.analyzer.analyze_style(image)
            except Exception as e:
                if not self._is_current(run_id):
                    return
                logger.error(f"[orchestrator] Style analysis failed: {e}")
                ctx.state = RunState.FAILED
                ctx.last_error = str(e) or STATUS_STYLE_FAILED
                await report(0, STATUS_STYLE_FAILED)
                if isinstance(e, StyleAnalysisError):
                    raise
                raise StyleAnalysisError(ctx.last_error) from e
            if not self._is_current(run_id):
                return
            ctx.style_cache.set(style, image.fingerprint)
        else:
            logger.info("[orchestrator] Using cached style description")

        # Step 2: one variation at a time
        ctx.state = RunState.GENERATING
        for index in range(1, requested_count + 1):
            await report(index - 1, status_generating(index))
            if not self._is_current(run_id):
                return

            prompt = self.composer.compose(style, categories, extra_prompt)
            outcome = ctx.gallery.begin(index, prompt)

            try:
                generated = await self.generator.generate_variation(image, prompt)
            except Exception as e:
                if not self._is_current(run_id):
                    return
                reason = str(e) or type(e).__name__
                logger.warning(f"[orchestrator] #{index:03d} failed: {reason}")
                ctx.gallery.resolve(index, error=reason)
                await report(index, status_failed(index))
            else:
                if not self._is_current(run_id):
                    return
                ctx.gallery.resolve(index, image=generated)
                await report(index, status_generated(index))

            yield outcome
            if not self._is_current(run_id):
                return

        ctx.state = RunState.COMPLETED
        await report(requested_count, STATUS_DONE)
        logger.info(
            f"[orchestrator] Run {run_id} complete: {ctx.gallery.succeeded_count} ok, "
            f"{ctx.gallery.failed_count} failed"
        )

    async def run_all(
        self,
        requested_count: int,
        active_categories: Iterable[str],
        extra_prompt: str | None = None,
        base_image: BaseImage | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> list[VariationOutcome]:
        """Drain ``run`` and return the outcomes in index order."""
        outcomes = []
        async for outcome in self.run(
            requested_count,
            active_categories,
            extra_prompt=extra_prompt,
            base_image=base_image,
            on_progress=on_progress,
        ):
            outcomes.append(outcome)
        return outcomes
