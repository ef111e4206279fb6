from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from persona_genai.ad_library import AdLibrary, AdNotFoundError
from persona_genai.config import settings
from persona_genai.images import ImageDecodeError, ensure_data_url
from persona_genai.personas import Persona, ensure_unique_ids
from persona_genai.prompts import AD_ANALYSIS_PROMPT, ELEMENT_REWRITE_PROMPT, PERSONA_ANALYSIS_PROMPT
from persona_genai.providers.base import Provider

logger = logging.getLogger(__name__)


class AdAnalysisError(RuntimeError):
    pass


class InvalidCopyRequest(ValueError):
    pass


# Schema handed to the structured-output call.
class ExtractedElement(BaseModel):
    text: str
    type: str
    rationale: str


class ExtractedAdAnalysis(BaseModel):
    overall_blurb: str
    elements: list[ExtractedElement]


class _Wire(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AdElement(_Wire):
    id: str
    type: str
    text: str
    rationale: str


class AdImageAnalysis(_Wire):
    overall_blurb: str
    elements: list[AdElement]


class RewrittenElement(_Wire):
    element_id: str
    element_type: str
    before_text: str
    after_text: str


class PersonaAnalysis(_Wire):
    persona: Persona
    analysis: str


class PersonaVariation(_Wire):
    persona: Persona
    analysis: str
    rewritten_elements: list[RewrittenElement] = Field(default_factory=list)


@dataclass(frozen=True)
class CopyVariationRequest:
    personas: list[Persona]
    product_description: str
    image_data_url: str


@dataclass(frozen=True)
class CopyVariationResult:
    ad_analysis: AdImageAnalysis
    results: list[PersonaVariation]

    def payload(self) -> dict[str, Any]:
        return {
            "success": True,
            "message": "Analysis and variations completed successfully",
            "adImageAnalysis": self.ad_analysis.model_dump(by_alias=True),
            "results": [r.model_dump(by_alias=True) for r in self.results],
        }


_persona_list = TypeAdapter(list[Persona])


def parse_copy_request(body: Any, ads: AdLibrary) -> CopyVariationRequest:
    """
    Validate a copy-variation request and load its ad image. Raises
    InvalidCopyRequest before any provider call is made.
    """
    if not isinstance(body, dict):
        raise InvalidCopyRequest("Request body must be a JSON object.")

    raw_personas = body.get("personas")
    if not isinstance(raw_personas, list):
        raise InvalidCopyRequest("personas must be a list.")
    try:
        personas = _persona_list.validate_python(raw_personas)
        ensure_unique_ids(personas)
    except (ValidationError, ValueError) as exc:
        raise InvalidCopyRequest(f"Invalid personas: {exc}") from exc

    product_description = body.get("productDescription") or ""
    if not isinstance(product_description, str):
        raise InvalidCopyRequest("productDescription must be a string.")

    uploaded = body.get("uploadedAdImage")
    ad_path = body.get("adImagePath")
    if uploaded is not None:
        if not isinstance(uploaded, str):
            raise InvalidCopyRequest("Uploaded ad image must be a base64 string.")
        if not uploaded.strip():
            raise InvalidCopyRequest("Ad image could not be loaded")
        try:
            image_data_url = ensure_data_url(uploaded)
        except ImageDecodeError as exc:
            raise InvalidCopyRequest(f"Ad image could not be loaded: {exc}") from exc
    elif ad_path is not None:
        if not isinstance(ad_path, str):
            raise InvalidCopyRequest("Ad image path must be a string.")
        try:
            image_data_url = ads.read_data_url(ad_path)
        except (AdNotFoundError, ImageDecodeError) as exc:
            raise InvalidCopyRequest(f"Ad image could not be loaded: {exc}") from exc
    else:
        raise InvalidCopyRequest("No ad image provided")

    return CopyVariationRequest(
        personas=personas,
        product_description=product_description,
        image_data_url=image_data_url,
    )


def strip_enclosing_quotes(text: str) -> str:
    s = (text or "").strip()
    if len(s) >= 2 and s[0] == s[-1] and s[0] in ("'", '"'):
        return s[1:-1]
    return s


class CopyVariationPipeline:
    """
    Ad image -> element analysis (once), then per persona: a marketing
    analysis and one rewrite per element. Fan-outs run concurrently but
    results are returned in input order.
    """

    def __init__(self, provider: Provider) -> None:
        self.provider = provider

    async def analyze_ad_image(self, image_data_url: str) -> AdImageAnalysis:
        logger.info("analyzing ad image")
        parsed = await self.provider.parse_image(image_data_url, AD_ANALYSIS_PROMPT, ExtractedAdAnalysis)
        if parsed is None:
            raise AdAnalysisError("Image analysis parsing failed")
        elements = [
            AdElement(id=f"element_{idx + 1}", type=el.type, text=el.text, rationale=el.rationale)
            for idx, el in enumerate(parsed.elements)
        ]
        return AdImageAnalysis(overall_blurb=parsed.overall_blurb, elements=elements)

    async def analyze_persona(self, persona: Persona, product_description: str) -> PersonaAnalysis:
        prompt = PERSONA_ANALYSIS_PROMPT.format(
            name=persona.name,
            bio=persona.bio,
            product_description=product_description,
        )
        resp = await self.provider.complete_text(
            prompt,
            max_tokens=settings.persona_analysis_max_tokens,
            temperature=settings.copy_temperature,
        )
        return PersonaAnalysis(persona=persona, analysis=resp.text)

    async def rewrite_element(
        self,
        element: AdElement,
        persona_analysis: PersonaAnalysis,
        product_description: str,
    ) -> RewrittenElement:
        prompt = ELEMENT_REWRITE_PROMPT.format(
            type=element.type,
            text=element.text,
            rationale=element.rationale,
            product_description=product_description,
            analysis=persona_analysis.analysis,
        )
        resp = await self.provider.complete_text(
            prompt,
            max_tokens=settings.copy_rewrite_max_tokens,
            temperature=settings.copy_temperature,
        )
        return RewrittenElement(
            element_id=element.id,
            element_type=element.type,
            before_text=element.text,
            after_text=strip_enclosing_quotes(resp.text),
        )

    async def vary_persona(
        self,
        persona_analysis: PersonaAnalysis,
        ad_analysis: AdImageAnalysis,
        product_description: str,
    ) -> PersonaVariation:
        rewritten = await asyncio.gather(
            *(self.rewrite_element(el, persona_analysis, product_description) for el in ad_analysis.elements)
        )
        return PersonaVariation(
            persona=persona_analysis.persona,
            analysis=persona_analysis.analysis,
            rewritten_elements=list(rewritten),
        )

    async def run(self, request: CopyVariationRequest) -> CopyVariationResult:
        ad_analysis = await self.analyze_ad_image(request.image_data_url)
        logger.info("ad image has %s element(s); analyzing %s persona(s)", len(ad_analysis.elements), len(request.personas))

        analyses = await asyncio.gather(
            *(self.analyze_persona(p, request.product_description) for p in request.personas)
        )
        results = await asyncio.gather(
            *(self.vary_persona(a, ad_analysis, request.product_description) for a in analyses)
        )
        return CopyVariationResult(ad_analysis=ad_analysis, results=list(results))
