from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Protocol

from persona_genai.config import settings
from persona_genai.costs import CostAccumulator, Pricing
from persona_genai.events import (
    CompleteEvent,
    ErrorEvent,
    EvaluationEvent,
    ImageEvent,
    RefinementEvent,
    StatusEvent,
)
from persona_genai.images import decode_b64, to_data_url
from persona_genai.prompts import build_evaluation_prompt, build_improvement_prompt, build_initial_prompt
from persona_genai.providers.base import Provider

logger = logging.getLogger(__name__)


class ApprovalClassifier(Protocol):
    def is_approved(self, feedback: str) -> bool: ...


@dataclass(frozen=True)
class TokenApprovalClassifier:
    """
    Approves when the evaluator's text contains `token` anywhere.

    Plain substring match: "NOT APPROVED" and "DISAPPROVED" also approve.
    """

    token: str = "APPROVED"

    def is_approved(self, feedback: str) -> bool:
        return self.token in (feedback or "")


@dataclass(frozen=True)
class GenerationAttempt:
    step_index: int
    image_b64: str
    evaluation_feedback: str | None
    approved: bool


@dataclass
class RefinementSession:
    prompt: str
    costs: CostAccumulator = field(default_factory=lambda: CostAccumulator(Pricing.from_settings()))
    attempts: list[GenerationAttempt] = field(default_factory=list)

    @property
    def rounds(self) -> int:
        return len(self.attempts)

    @property
    def approved(self) -> bool:
        return any(a.approved for a in self.attempts)

    def record(self, step_index: int, image_b64: str, feedback: str, approved: bool) -> GenerationAttempt:
        if self.attempts and step_index <= self.attempts[-1].step_index:
            raise ValueError(f"step_index {step_index} does not follow {self.attempts[-1].step_index}")
        if approved and self.approved:
            raise ValueError("session already has an approved attempt")
        attempt = GenerationAttempt(
            step_index=step_index,
            image_b64=image_b64,
            evaluation_feedback=feedback,
            approved=approved,
        )
        self.attempts.append(attempt)
        return attempt


class RefinementLoop:
    """
    Generate -> evaluate -> (approve | edit with feedback) -> evaluate ...

    `run()` is an async generator of progress events. It always ends with
    exactly one `complete` or `error` event and performs at most
    `max_attempts` evaluation rounds.
    """

    def __init__(
        self,
        provider: Provider,
        max_attempts: int | None = None,
        initial_quality: str | None = None,
        edit_quality: str | None = None,
        classifier: ApprovalClassifier | None = None,
    ) -> None:
        max_attempts = settings.max_attempts if max_attempts is None else int(max_attempts)
        if not 1 <= max_attempts <= settings.max_attempts_ceiling:
            raise ValueError(f"max_attempts must be between 1 and {settings.max_attempts_ceiling}")
        self.provider = provider
        self.max_attempts = max_attempts
        self.initial_quality = initial_quality or settings.initial_quality
        self.edit_quality = edit_quality or settings.edit_quality
        self.classifier = classifier or TokenApprovalClassifier(settings.approval_token)
        self.evaluation_prompt = build_evaluation_prompt(settings.approval_token)

    async def run(self, prompt: str, session: RefinementSession | None = None) -> AsyncIterator[RefinementEvent]:
        prompt = (prompt or "").strip()
        if not prompt:
            raise ValueError("prompt is required")
        if session is None:
            session = RefinementSession(prompt=prompt)
        elif session.prompt.strip() != prompt:
            raise ValueError("session belongs to a different prompt")
        elif session.attempts:
            raise ValueError("session already has attempts; start a new session per submission")

        try:
            async for event in self._steps(session):
                yield event
        except Exception as exc:
            logger.exception("refinement failed after %s round(s)", session.rounds)
            yield ErrorEvent(error=str(exc) or "Failed to generate image")

    async def _steps(self, session: RefinementSession) -> AsyncIterator[RefinementEvent]:
        yield StatusEvent(message="Generating initial image...")
        generated = await self.provider.generate_image(
            build_initial_prompt(session.prompt),
            quality=self.initial_quality,
        )
        session.costs.add_image_operation()
        image_b64 = generated.image_b64
        step = 0
        yield ImageEvent(
            step=step,
            image_data=to_data_url(image_b64),
            message="Initial image generated. Evaluating quality...",
        )

        while True:
            round_no = session.rounds + 1
            yield StatusEvent(message=f"Evaluating image quality (attempt {round_no})...")
            evaluation = await self.provider.evaluate_image(to_data_url(image_b64), self.evaluation_prompt)
            session.costs.add_token_usage(evaluation.prompt_tokens, evaluation.completion_tokens)

            feedback = evaluation.text or ""
            approved = self.classifier.is_approved(feedback)
            session.record(step, image_b64, feedback, approved)
            logger.info("round %s/%s approved=%s", round_no, self.max_attempts, approved)
            yield EvaluationEvent(step=round_no, feedback=feedback)

            if approved or round_no >= self.max_attempts:
                break

            yield StatusEvent(message=f"Improving image based on feedback (attempt {round_no})...")
            edited = await self.provider.edit_image(
                decode_b64(image_b64),
                build_improvement_prompt(session.prompt, feedback),
                quality=self.edit_quality,
            )
            session.costs.add_image_operation()
            image_b64 = edited.image_b64
            step = round_no
            yield ImageEvent(
                step=step,
                image_data=to_data_url(image_b64),
                message=f"Image improved (attempt {round_no}). Re-evaluating...",
            )

        if session.approved:
            message = "Image approved! Process complete."
        else:
            message = "Reached maximum attempts. Using best generated image."
        yield CompleteEvent(
            final_image=to_data_url(image_b64),
            is_approved=session.approved,
            message=message,
            total_cost=session.costs.formatted(),
        )
