from __future__ import annotations

import logging
from typing import Any

from persona_genai.config import settings
from persona_genai.providers.base import GeneratedImage, SchemaT, TextResult

logger = logging.getLogger(__name__)


class OpenAIProvider:
    name = "openai"

    def __init__(self, api_key: str) -> None:
        from openai import AsyncOpenAI  # type: ignore

        self.client = AsyncOpenAI(api_key=api_key)

    async def generate_image(self, prompt: str, quality: str) -> GeneratedImage:
        model = settings.openai_image_model
        resp = await self.client.images.generate(
            model=model,
            prompt=prompt,
            n=1,
            size=settings.image_size,
            quality=quality,
        )
        logger.info("image generate usage: %s", getattr(resp, "usage", None))
        return GeneratedImage(
            image_b64=_first_b64(resp),
            provider=self.name,
            model=model,
            raw_metadata={"quality": quality, "size": settings.image_size},
        )

    async def edit_image(self, image_png: bytes, prompt: str, quality: str) -> GeneratedImage:
        model = settings.openai_image_model
        resp = await self.client.images.edit(
            model=model,
            image=("image.png", image_png, "image/png"),
            prompt=prompt,
            n=1,
            size=settings.image_size,
            quality=quality,
        )
        logger.info("image edit usage: %s", getattr(resp, "usage", None))
        return GeneratedImage(
            image_b64=_first_b64(resp),
            provider=self.name,
            model=model,
            raw_metadata={"quality": quality, "size": settings.image_size, "edit": True},
        )

    async def evaluate_image(self, image_url: str, instruction: str) -> TextResult:
        """
        Ask a vision chat model to critique an image. `image_url` is a data URL.
        """
        model = settings.openai_evaluation_model
        resp = await self.client.chat.completions.create(
            model=model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": instruction},
                        {"type": "image_url", "image_url": {"url": image_url}},
                    ],
                }
            ],
            max_tokens=settings.evaluation_max_tokens,
        )
        return _chat_result(resp, provider=self.name, model=model)

    async def parse_image(self, image_url: str, instruction: str, schema: type[SchemaT]) -> SchemaT | None:
        """
        Structured-output vision call: the Responses API validates the reply
        against `schema`. Returns None when the model gave nothing parseable.
        """
        model = settings.openai_analysis_model
        resp = await self.client.responses.parse(
            model=model,
            input=[
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": instruction},
                        {"type": "input_image", "image_url": image_url, "detail": "high"},
                    ],
                }
            ],
            text_format=schema,
        )
        logger.debug("image parse output: %s", getattr(resp, "output_text", ""))
        return resp.output_parsed

    async def complete_text(self, prompt: str, max_tokens: int, temperature: float) -> TextResult:
        model = settings.openai_copy_model
        resp = await self.client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return _chat_result(resp, provider=self.name, model=model)


def _first_b64(resp: Any) -> str:
    data = getattr(resp, "data", None) or []
    b64 = getattr(data[0], "b64_json", None) if data else None
    if not b64:
        raise RuntimeError("image response contained no b64_json payload")
    return b64


def _chat_result(resp: Any, provider: str, model: str) -> TextResult:
    text = ""
    choices = getattr(resp, "choices", None) or []
    if choices:
        text = choices[0].message.content or ""

    usage = getattr(resp, "usage", None)
    prompt_tokens = getattr(usage, "prompt_tokens", 0) or 0
    completion_tokens = getattr(usage, "completion_tokens", 0) or 0
    logger.info("%s usage: prompt=%s completion=%s", model, prompt_tokens, completion_tokens)
    return TextResult(
        text=text,
        provider=provider,
        model=model,
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
    )
