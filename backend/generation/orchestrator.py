"""
Generation Orchestrator
=======================

Turns one prompt into a multi-slide carousel:

    idle -> placeholder build -> text generation -> image queue dispatch
         -> draining -> complete | error

The placeholder build is synchronous, so the user sees the slide skeleton
before any network call. Every run takes a new run token from the store;
results arriving for an older token are discarded.
"""

import logging
from datetime import datetime
from typing import List, Optional

from ..config import CarouselSettings
from ..canvas import collection
from ..canvas.carousel_store import CarouselStore
from ..models.canvas_models import (
    BackgroundStrategy, SlideContent, PLACEHOLDER_BACKGROUNDS, PLACEHOLDER_BODY,
)
from ..models.orchestrator_models import (
    BackgroundTask, GenerationOptions, GenerationProgress, GenerationStep, TextGenerationResult,
)
from ..services import carousel_prompt_service as prompts
from .errors import SlideCountMismatchError, TextGenerationError
from .task_queue import new_task_id

logger = logging.getLogger(__name__)

# Total progress checkpoints of a run
PROGRESS_PLACEHOLDERS = 10
PROGRESS_TEXT_REQUESTED = 30
PROGRESS_TEXT_APPLIED = 70
PROGRESS_COMPLETE = 100

# Image loading progress shown on placeholder canvases before their task starts
PLACEHOLDER_IMAGE_PROGRESS = 10


def validate_slide_count(slide_count: int, settings: CarouselSettings) -> int:
    """Raise ValueError for a slide count outside the configured range."""
    if not settings.min_slide_count <= slide_count <= settings.max_slide_count:
        raise ValueError(
            f"slide_count must be between {settings.min_slide_count} "
            f"and {settings.max_slide_count}, got {slide_count}"
        )
    return slide_count


class GenerationOrchestrator:
    """
    Drives generation runs against a CarouselStore.

    Args:
        store: State owner; all mutations go through it
        text_generator: Object with
            `async generate(structured_prompt, slide_count, strategy)`
            returning a TextGenerationResult
    """

    def __init__(self, store: CarouselStore, text_generator):
        self.store = store
        self.text_generator = text_generator

    @property
    def is_generating(self) -> bool:
        return self.store.generation_progress.is_generating

    def _is_current(self, run_id: int) -> bool:
        return self.store.current_run_id == run_id

    async def start_generation(
        self,
        prompt: str,
        slide_count: int,
        background_strategy: BackgroundStrategy = BackgroundStrategy.UNIQUE,
        **options
    ) -> Optional[int]:
        """
        Run a full generation. Returns the run id, or None when another run
        is already active (the request is dropped, not queued) or the
        slide count is outside 1..max_canvas_count.
        """
        if self.is_generating:
            logger.info("[ORCHESTRATOR] Generation already in progress, ignoring request")
            return None
        if not 1 <= slide_count <= self.store.max_canvas_count:
            logger.info(
                f"[ORCHESTRATOR] {slide_count} slides outside canvas limit "
                f"of {self.store.max_canvas_count}, ignoring request"
            )
            return None

        request = GenerationOptions(
            prompt=prompt,
            slide_count=slide_count,
            background_strategy=background_strategy,
            **options
        )
        run_id = self.store.next_run_id()
        placeholder_ids = self._build_placeholders(request)
        project_id = self.store.current_project.id

        try:
            result = await self._generate_text(request)
        except TextGenerationError as e:
            self._fail_run(run_id, str(e))
            return run_id
        except Exception as e:
            logger.exception("[ORCHESTRATOR] Unexpected text generation failure")
            self._fail_run(run_id, f"Generation failed: {e}")
            return run_id

        if not self._is_current(run_id):
            logger.info(f"[ORCHESTRATOR] Run {run_id} superseded, discarding text result")
            return run_id

        if self.store.current_project is None or self.store.current_project.id != project_id:
            logger.info(f"[ORCHESTRATOR] Project replaced during run {run_id}, stopping")
            self._complete_run(run_id)
            return run_id

        image_canvas_ids = self._apply_text(placeholder_ids, result)
        self.store.update_generation_progress(
            current_step=GenerationStep.IMAGES,
            step_progress=PROGRESS_TEXT_APPLIED,
            total_progress=PROGRESS_TEXT_APPLIED,
        )

        self._enqueue_images(run_id, image_canvas_ids)
        await self._drain(run_id)

        self._complete_run(run_id)
        return run_id

    def _build_placeholders(self, request: GenerationOptions) -> List[str]:
        """Install a placeholder project immediately. Returns its canvas ids in order."""
        canvases = [
            collection.create_canvas(
                content=SlideContent(
                    title=f"Slide {n}",
                    body=PLACEHOLDER_BODY,
                    background_prompt=request.prompt,
                ),
                slide_number=n,
                is_active=n == 1,
                background_image=PLACEHOLDER_BACKGROUNDS[(n - 1) % len(PLACEHOLDER_BACKGROUNDS)],
                format_id=self.store.settings.default_canvas_format,
                is_loading=True,
            )
            for n in range(1, request.slide_count + 1)
        ]
        project = collection.create_project(
            prompts.truncate_name(request.prompt),
            canvases=canvases,
            background_strategy=request.background_strategy,
            source_prompt=request.prompt,
        )
        content_type = prompts.detect_content_type(request.prompt)
        project = project.model_copy(update={
            "metadata": project.metadata.model_copy(update={"content_type": content_type}),
            "template_id": request.layout_preset,
            "tags": [request.layout_preset] if request.layout_preset else [],
        })

        self.store.set_current_project(project)
        self.store.add_to_history(project)
        self.store.loading_states.clear()
        self.store.timeline_store.clear_all()
        self.store.media_assets = {}

        for canvas in project.canvases:
            self.store.timeline_store.create_canvas_timeline(canvas.id)
            self.store.loading_states.update(
                canvas.id,
                has_placeholder=True,
                is_image_loading=True,
                image_load_progress=PLACEHOLDER_IMAGE_PROGRESS,
            )

        self.store.generation_progress = GenerationProgress(
            is_generating=True,
            current_step=GenerationStep.TEXT,
            step_progress=PROGRESS_PLACEHOLDERS,
            total_progress=PROGRESS_PLACEHOLDERS,
            current_slide=1,
            total_slides=request.slide_count,
            started_at=datetime.now(),
        )
        logger.info(f"[ORCHESTRATOR] Placeholder project {project.id} with {len(canvases)} slides installed")
        return [c.id for c in project.canvases]

    async def _generate_text(self, request: GenerationOptions) -> TextGenerationResult:
        self.store.update_generation_progress(
            step_progress=PROGRESS_TEXT_REQUESTED,
            total_progress=PROGRESS_TEXT_REQUESTED,
        )
        structured_prompt = prompts.build_structured_prompt(
            topic=request.prompt,
            slide_count=request.slide_count,
            background_strategy=request.background_strategy,
            tone=request.tone,
            target_audience=request.target_audience,
            style=request.style,
        )
        result = await self.text_generator.generate(
            structured_prompt, request.slide_count, request.background_strategy
        )
        slides = getattr(result, "slides", None)
        if slides is None:
            raise TextGenerationError("Invalid text response: slides missing")
        if len(slides) != request.slide_count:
            raise SlideCountMismatchError(request.slide_count, len(slides))
        return result

    def _apply_text(self, placeholder_ids: List[str], result: TextGenerationResult) -> List[str]:
        """
        Write generated slides onto the placeholder canvases they were built
        for. Canvases removed in the meantime are skipped. Returns the ids of
        canvases that received a background prompt.
        """
        image_canvas_ids = []
        for index, (canvas_id, slide) in enumerate(zip(placeholder_ids, result.slides), 1):
            if not self.store.has_canvas(canvas_id):
                logger.info(f"[ORCHESTRATOR] Slide {index} canvas was removed, skipping")
                continue

            self.store.update_canvas(
                canvas_id,
                content=SlideContent(
                    title=slide.title or f"Slide {index}",
                    body=slide.body,
                    cta=slide.cta,
                    background_prompt=slide.background_prompt,
                ),
                is_loading=False,
            )
            self.store.loading_states.set_text_loaded(canvas_id)
            if slide.background_prompt.strip():
                image_canvas_ids.append(canvas_id)
        return image_canvas_ids

    def _enqueue_images(self, run_id: int, canvas_ids: List[str]) -> None:
        canvases = [self.store.get_canvas(cid) for cid in canvas_ids]
        canvases = [c for c in canvases if c is not None]
        strategy = self.store.current_project.metadata.background_strategy
        image_prompts = prompts.harmonize_background_prompts(
            [c.content.background_prompt for c in canvases], strategy
        )
        for canvas, image_prompt in zip(canvases, image_prompts):
            if not image_prompt:
                continue
            self.store.background_queue.enqueue(BackgroundTask(
                id=new_task_id("bg"),
                canvas_id=canvas.id,
                slide_number=canvas.slide_number,
                prompt=image_prompt,
                run_id=run_id,
            ))

    async def _drain(self, run_id: int) -> None:
        """Drain the queue, keeping the slide counter of the run current."""
        queue = self.store.background_queue
        run_tasks = [t for t in queue.pending() if t.run_id == run_id]
        total = len(run_tasks)

        for done, task in enumerate(run_tasks, 1):
            if self._is_current(run_id):
                self.store.update_generation_progress(current_slide=task.slide_number)
            await queue.process_task(task.id)
            if self._is_current(run_id):
                image_span = PROGRESS_COMPLETE - PROGRESS_TEXT_APPLIED - 1
                self.store.update_generation_progress(
                    step_progress=done * 100 // total,
                    total_progress=PROGRESS_TEXT_APPLIED + image_span * done // total,
                )

        # Tasks queued meanwhile (e.g. regenerations) are drained too
        await queue.process_queue()

    def _complete_run(self, run_id: int) -> None:
        if not self._is_current(run_id):
            return
        self.store.update_generation_progress(
            is_generating=False,
            current_step=GenerationStep.COMPLETE,
            step_progress=PROGRESS_COMPLETE,
            total_progress=PROGRESS_COMPLETE,
        )
        logger.info(f"[ORCHESTRATOR] Run {run_id} complete")

    def _fail_run(self, run_id: int, error: str) -> None:
        """Record a run-level error. Placeholder canvases are kept."""
        if not self._is_current(run_id):
            return
        logger.error(f"[ORCHESTRATOR] Run {run_id} failed: {error}")
        self.store.update_generation_progress(is_generating=False, error=error)

    def cancel_generation(self) -> None:
        """
        Stop reporting the active run. In-flight calls still finish, but
        their results are discarded because the run token moves on.
        """
        self.store.next_run_id()
        self.store.generation_progress = GenerationProgress(error="Generation cancelled by user")
        logger.info("[ORCHESTRATOR] Generation cancelled")

    def reset_generation(self) -> None:
        self.store.generation_progress = GenerationProgress()

    async def regenerate_slide(self, canvas_id: str, new_prompt: Optional[str] = None) -> Optional[BackgroundTask]:
        """
        Generate a new background for one canvas.

        Independent of the run guard: allowed while a run is active. The
        previous stored background is removed first, then a fresh task is
        queued and run as soon as the image call in flight (if any) finishes. Returns the task in its final state, or
        None for an unknown canvas.
        """
        canvas = self.store.get_canvas(canvas_id)
        project = self.store.current_project
        if canvas is None or project is None:
            return None

        base_prompt = new_prompt or canvas.content.background_prompt or project.metadata.source_prompt
        if not base_prompt:
            logger.info(f"[ORCHESTRATOR] No prompt to regenerate canvas {canvas_id}")
            return None
        image_prompt = prompts.optimize_image_prompt(base_prompt, canvas.content.title or None)

        existing = self.store.media_store.get_canvas_background(project.id, canvas_id)
        if existing:
            self.store.media_store.remove_media_item(project.id, existing.id)
            self.store.remove_media_asset(canvas_id, existing.url)
            logger.info(f"[ORCHESTRATOR] Removed old background for canvas {canvas_id}")

        if new_prompt:
            self.store.update_canvas(
                canvas_id,
                content=canvas.content.model_copy(update={"background_prompt": new_prompt}),
            )
        self.store.update_canvas(canvas_id, is_regenerating=True)

        task = self.store.background_queue.enqueue(BackgroundTask(
            id=new_task_id("regen"),
            canvas_id=canvas_id,
            slide_number=canvas.slide_number,
            prompt=image_prompt,
        ))
        try:
            final = await self.store.background_queue.process_task(task.id)
        finally:
            self.store.update_canvas(canvas_id, is_regenerating=False)
        return final or self.store.background_queue.get(task.id) or task
