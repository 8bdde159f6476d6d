"""
Generation Session - the generate -> review -> refine loop for one user

Only one generation runs per session. Every request gets a sequence number;
a result is applied only if its number is still the latest one issued, so a
reset or resubmit makes any in-flight result stale.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

from models.generation import GenerationRequest, GenerationResult
from models.session import SessionPhase, SessionState

from .prompt_builder import build_refinement_prompt

logger = logging.getLogger(__name__)

MISSING_KEY_ERROR = "Gemini API key is required"
UNEXPECTED_ERROR = "An unexpected error occurred. Please try again."

SuccessHook = Callable[[GenerationResult], Union[None, Awaitable[None]]]


@dataclass
class SessionHooks:
    """Side effects fired once per successful result (confetti, clipboard copy)"""

    celebrate: Optional[SuccessHook] = None
    copy_to_clipboard: Optional[SuccessHook] = None
    extra: list[SuccessHook] = field(default_factory=list)

    def all(self) -> list[SuccessHook]:
        hooks = [self.celebrate, self.copy_to_clipboard, *self.extra]
        return [hook for hook in hooks if hook is not None]


class GenerationSession:
    """State machine driving one generation turn at a time"""

    def __init__(
        self,
        llm_service: Any,
        api_key_provider: Callable[[], Optional[str]],
        hooks: SessionHooks | None = None,
        tick_interval: float = 1.0,
    ):
        self.llm_service = llm_service
        self.api_key_provider = api_key_provider
        self.hooks = hooks or SessionHooks()
        self.tick_interval = tick_interval

        self.state = SessionState()
        self._sequence = 0
        self._task: asyncio.Task | None = None
        # stale runs dropped by reset() stay referenced until they finish
        self._pending: set[asyncio.Task] = set()
        self._ticker: asyncio.Task | None = None

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    @property
    def is_generating(self) -> bool:
        return self.state.phase == SessionPhase.GENERATING

    def snapshot(self) -> SessionState:
        return self.state.model_copy(deep=True)

    # ========== Transitions ==========

    def submit(
        self,
        prompt: str,
        model_id: str | None = None,
        include_helper: bool | None = None,
        include_sample_code: bool | None = None,
    ) -> bool:
        """Start a new turn. Returns False when the action was ignored or blocked."""
        if self.is_generating or not prompt.strip():
            return False

        api_key = self.api_key_provider()
        if not api_key:
            self.state.error = MISSING_KEY_ERROR
            return False

        state = SessionState(
            prompt=prompt,
            model_id=model_id or self.state.model_id,
            include_helper=self.state.include_helper if include_helper is None else include_helper,
            include_sample_code=(
                self.state.include_sample_code if include_sample_code is None else include_sample_code
            ),
        )
        self.state = state
        self._start(prompt, api_key)
        return True

    def give_feedback(self, positive: bool) -> bool:
        if self.state.phase != SessionPhase.REVIEWING or self.state.result is None:
            return False
        if not self.state.result.success:
            return False

        self.state.feedback_given = True
        self.state.feedback_positive = positive
        if not positive:
            self.state.phase = SessionPhase.REFINING
        return True

    def submit_refine(self, text: str) -> bool:
        """Regenerate with the original request plus the user's critique"""
        if self.state.phase != SessionPhase.REFINING or not text.strip():
            return False

        api_key = self.api_key_provider()
        if not api_key:
            self.state.error = MISSING_KEY_ERROR
            return False

        self.state = SessionState(
            prompt=self.state.prompt,
            model_id=self.state.model_id,
            include_helper=self.state.include_helper,
            include_sample_code=self.state.include_sample_code,
            refine_text=text,
        )
        self._start(build_refinement_prompt(self.state.prompt, text), api_key)
        return True

    def reset(self):
        """Back to IDLE; an in-flight request is left to finish but its result is dropped"""
        self._sequence += 1
        self._stop_ticker()
        self._task = None
        self.state = SessionState(
            model_id=self.state.model_id,
            include_helper=self.state.include_helper,
            include_sample_code=self.state.include_sample_code,
        )

    async def wait(self) -> SessionState:
        """Wait for the in-flight generation, if any, and return the resulting state"""
        task = self._task
        if task is not None:
            await asyncio.shield(task)
        return self.snapshot()

    # ========== Internals ==========

    def _start(self, user_prompt: str, api_key: str):
        self._sequence += 1
        request = GenerationRequest(
            prompt=user_prompt,
            model_id=self.state.model_id,
            include_helper=self.state.include_helper,
            include_sample_code=self.state.include_sample_code,
            sequence=self._sequence,
        )
        self.state.phase = SessionPhase.GENERATING
        self.state.elapsed_seconds = 0
        self._stop_ticker()
        self._ticker = asyncio.create_task(self._tick(request.sequence))
        self._task = asyncio.create_task(self._run(request, api_key))
        self._pending.add(self._task)
        self._task.add_done_callback(self._pending.discard)

    async def _tick(self, sequence: int):
        while True:
            await asyncio.sleep(self.tick_interval)
            if sequence != self._sequence:
                return
            self.state.elapsed_seconds += 1

    def _stop_ticker(self):
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    async def _run(self, request: GenerationRequest, api_key: str):
        try:
            result = await self.llm_service.generate_for(request, api_key)
        except Exception:
            logger.exception("Error generating script")
            result = GenerationResult(success=False, error=UNEXPECTED_ERROR)
        finally:
            if request.sequence == self._sequence:
                self._stop_ticker()

        if request.sequence != self._sequence:
            logger.info("Discarding stale result for request #%d", request.sequence)
            return
        await self._apply(result)

    async def _apply(self, result: GenerationResult):
        if result.success:
            result = result.model_copy(update={"code": (result.code or "").strip()})
        self.state.result = result
        self.state.error = None if result.success else (result.error or UNEXPECTED_ERROR)
        self.state.phase = SessionPhase.REVIEWING
        self._task = None

        if result.success:
            await self._fire_hooks(result)

    async def _fire_hooks(self, result: GenerationResult):
        for hook in self.hooks.all():
            try:
                outcome = hook(result)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.warning("Success hook %r failed: %s", getattr(hook, "__name__", hook), e)
