from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from persona_genai.config import settings
from persona_genai.costs import CostAccumulator, Pricing
from persona_genai.images import to_data_url, to_png_bytes
from persona_genai.personas import Persona
from persona_genai.prompts import PERSONA_IMAGE_PROMPT
from persona_genai.providers.base import ImageProvider

logger = logging.getLogger(__name__)


class PersonaImageVariation(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    persona_id: str
    persona_name: str
    image: str
    error: str | None = None


@dataclass(frozen=True)
class PersonaImageBatch:
    variations: list[PersonaImageVariation]
    cost: CostAccumulator

    def payload(self) -> dict:
        return {
            "variations": [v.model_dump(by_alias=True, exclude_none=True) for v in self.variations],
            "optimizationCost": self.cost.formatted(),
        }


def build_persona_prompt(persona: Persona, original_prompt: str) -> str:
    return PERSONA_IMAGE_PROMPT.format(name=persona.name, original_prompt=original_prompt, bio=persona.bio)


class PersonaImageVariator:
    """
    One persona-adapted edit of an approved image per persona. A failed edit
    never fails the batch: that entry keeps the original image and carries
    the error text.
    """

    def __init__(
        self,
        provider: ImageProvider,
        limit: int | None = None,
        charge_failed_edits: bool | None = None,
    ) -> None:
        self.provider = provider
        self.limit = settings.persona_variation_limit if limit is None else int(limit)
        if charge_failed_edits is None:
            charge_failed_edits = settings.charge_failed_persona_edits
        self.charge_failed_edits = bool(charge_failed_edits)

    async def run(
        self,
        original_image: str,
        prompt: str,
        personas: list[Persona],
        quality: str | None = None,
    ) -> PersonaImageBatch:
        # Decoded up front so a bad upload is a request error, not N persona errors.
        image_png = to_png_bytes(original_image)
        quality = quality or settings.persona_variation_quality
        cost = CostAccumulator(Pricing.from_settings())

        selected = personas[: self.limit]
        variations = await asyncio.gather(
            *(self._one(p, image_png, original_image, prompt, quality, cost) for p in selected)
        )
        return PersonaImageBatch(variations=list(variations), cost=cost)

    async def _one(
        self,
        persona: Persona,
        image_png: bytes,
        original_image: str,
        prompt: str,
        quality: str,
        cost: CostAccumulator,
    ) -> PersonaImageVariation:
        try:
            edited = await self.provider.edit_image(image_png, build_persona_prompt(persona, prompt), quality=quality)
        except Exception as exc:
            logger.exception("persona variation failed for %s", persona.name)
            if self.charge_failed_edits:
                cost.add_image_operation()
            return PersonaImageVariation(
                persona_id=persona.id,
                persona_name=persona.name,
                image=original_image,
                error=str(exc) or "Failed to generate persona variation",
            )

        cost.add_image_operation()
        logger.info("generated variation for persona %s", persona.name)
        return PersonaImageVariation(
            persona_id=persona.id,
            persona_name=persona.name,
            image=to_data_url(edited.image_b64),
        )
