from __future__ import annotations

import asyncio
import base64
import io
from collections.abc import Callable
from typing import Any

import pytest
from PIL import Image

from persona_genai.providers.base import GeneratedImage, TextResult


def make_image_b64(color: str = "red", fmt: str = "PNG", size: tuple[int, int] = (8, 8)) -> str:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return base64.b64encode(buf.getvalue()).decode("ascii")


class FakeProvider:
    """
    Scripted stand-in for OpenAIProvider. Every call is appended to `calls`
    as (method, prompt) so tests can assert what was (not) requested.
    """

    name = "fake"

    def __init__(
        self,
        evaluations: list[str] | None = None,
        ad_analysis: Any = None,
        text_fn: Callable[[str], str] | None = None,
        fail_generate: bool = False,
        fail_edit_when: Callable[[str], bool] | None = None,
        delay_fn: Callable[[str], float] | None = None,
    ) -> None:
        self.evaluations = list(evaluations or [])
        self.ad_analysis = ad_analysis
        self.text_fn = text_fn or (lambda prompt: "rewritten")
        self.fail_generate = fail_generate
        self.fail_edit_when = fail_edit_when
        self.delay_fn = delay_fn
        self.calls: list[tuple[str, str]] = []
        self._edits = 0

    async def _maybe_sleep(self, prompt: str) -> None:
        if self.delay_fn is not None:
            await asyncio.sleep(self.delay_fn(prompt))

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.calls if m == method)

    async def generate_image(self, prompt: str, quality: str) -> GeneratedImage:
        self.calls.append(("generate_image", prompt))
        if self.fail_generate:
            raise RuntimeError("generation quota exceeded")
        return GeneratedImage(image_b64=make_image_b64("red"), provider=self.name, model="fake-image")

    async def edit_image(self, image_png: bytes, prompt: str, quality: str) -> GeneratedImage:
        self.calls.append(("edit_image", prompt))
        await self._maybe_sleep(prompt)
        if self.fail_edit_when is not None and self.fail_edit_when(prompt):
            raise RuntimeError("edit rejected by safety system")
        self._edits += 1
        color = ("blue", "green", "yellow", "purple", "orange")[self._edits % 5]
        return GeneratedImage(image_b64=make_image_b64(color), provider=self.name, model="fake-image")

    async def evaluate_image(self, image_url: str, instruction: str) -> TextResult:
        self.calls.append(("evaluate_image", instruction))
        text = self.evaluations.pop(0) if self.evaluations else "needs work"
        return TextResult(text=text, provider=self.name, model="fake-vision", prompt_tokens=1000, completion_tokens=100)

    async def parse_image(self, image_url: str, instruction: str, schema: Any) -> Any:
        self.calls.append(("parse_image", instruction))
        if self.ad_analysis is None:
            return None
        return schema.model_validate(self.ad_analysis)

    async def complete_text(self, prompt: str, max_tokens: int, temperature: float) -> TextResult:
        self.calls.append(("complete_text", prompt))
        await self._maybe_sleep(prompt)
        return TextResult(text=self.text_fn(prompt), provider=self.name, model="fake-text")


SAMPLE_AD_ANALYSIS = {
    "overall_blurb": "Clear promise, strong proof, urgent CTA.",
    "elements": [
        {"text": "Sleep better tonight", "type": "Headline", "rationale": "Direct benefit."},
        {"text": "Rated 4.9 by 10,000 sleepers", "type": "Subheadline", "rationale": "Social proof."},
        {"text": "Shop now", "type": "CTA", "rationale": "Short and urgent."},
    ],
}

SAMPLE_PERSONAS = [
    {"id": "p1", "name": "Dev Dan", "image": "/david.png", "bio": "Full-stack developer in Austin."},
    {"id": "p2", "name": "Product Paula", "image": "/paula.png", "bio": "UX designer in San Francisco."},
    {"id": "p3", "name": "Tech Tom", "image": "/tom.png", "bio": "Startup founder in New York."},
    {"id": "p4", "name": "Ops Olivia", "image": "/olivia.png", "bio": "SRE who hates pagers."},
]


@pytest.fixture
def fake_provider_cls() -> type[FakeProvider]:
    return FakeProvider


@pytest.fixture
def image_b64() -> Callable[..., str]:
    return make_image_b64


@pytest.fixture
def sample_ad_analysis() -> dict[str, Any]:
    return SAMPLE_AD_ANALYSIS


@pytest.fixture
def sample_personas() -> list[dict[str, str]]:
    return [dict(p) for p in SAMPLE_PERSONAS]
