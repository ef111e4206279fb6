from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel

SchemaT = TypeVar("SchemaT", bound=BaseModel)


@dataclass(frozen=True)
class GeneratedImage:
    image_b64: str
    provider: str
    model: str
    raw_metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TextResult:
    text: str
    provider: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0


class ImageProvider(Protocol):
    name: str

    async def generate_image(self, prompt: str, quality: str) -> GeneratedImage: ...

    async def edit_image(self, image_png: bytes, prompt: str, quality: str) -> GeneratedImage: ...


class VisionProvider(Protocol):
    name: str

    async def evaluate_image(self, image_url: str, instruction: str) -> TextResult: ...

    async def parse_image(self, image_url: str, instruction: str, schema: type[SchemaT]) -> SchemaT | None: ...


class TextProvider(Protocol):
    name: str

    async def complete_text(self, prompt: str, max_tokens: int, temperature: float) -> TextResult: ...


class Provider(ImageProvider, VisionProvider, TextProvider, Protocol):
    """Everything the endpoints need from a single backend."""
