from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from persona_genai.ad_library import AdLibrary
from persona_genai.config import settings
from persona_genai.copy_variation import (
    AdAnalysisError,
    CopyVariationPipeline,
    InvalidCopyRequest,
    parse_copy_request,
)
from persona_genai.images import ImageDecodeError
from persona_genai.persona_images import PersonaImageVariator
from persona_genai.personas import Persona, ensure_unique_ids, load_personas
from persona_genai.products import DEFAULT_PRODUCT_DESCRIPTIONS
from persona_genai.providers.base import Provider
from persona_genai.providers.openai_provider import OpenAIProvider
from persona_genai.refinement import RefinementLoop
from persona_genai.streaming import event_stream_response

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

QUALITY_TIERS = {"low", "medium", "high", "auto"}

app = FastAPI(title="persona_genai")

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

static_dir = BASE_DIR / "static"
static_dir.mkdir(parents=True, exist_ok=True)
app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

ads = AdLibrary()
if ads.exists():
    app.mount("/ads", StaticFiles(directory=str(ads.root_dir)), name="ads")


def get_provider() -> Provider:
    if not settings.openai_api_key:
        raise HTTPException(status_code=400, detail="OPENAI_API_KEY is not set")
    return OpenAIProvider(api_key=settings.openai_api_key)


def get_provider_factory() -> Callable[[], Provider]:
    return get_provider


def get_ad_library() -> AdLibrary:
    return ads


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise HTTPException(status_code=400, detail=f"request body must be JSON: {exc}") from exc


def _parse_quality(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str) or value not in QUALITY_TIERS:
        raise HTTPException(status_code=400, detail=f"quality must be one of {sorted(QUALITY_TIERS)}")
    return value


def _parse_personas(value: Any) -> list[Persona]:
    if not isinstance(value, list):
        raise HTTPException(status_code=400, detail="personas must be a JSON list")
    out: list[Persona] = []
    for item in value:
        try:
            out.append(Persona.model_validate(item))
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"invalid persona: {exc}") from exc
    try:
        ensure_unique_ids(out)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return out


@app.get("/", response_class=HTMLResponse)
def index(request: Request):
    personas = load_personas(settings.personas_file)
    return templates.TemplateResponse(
        request=request,
        name="index.html",
        context={
            "personas": [p.model_dump(by_alias=True) for p in personas],
            "ads": [a.url_path for a in ads.list_ads()],
            "products": [p.model_dump(by_alias=True) for p in DEFAULT_PRODUCT_DESCRIPTIONS],
        },
    )


@app.get("/api/personas")
def list_personas():
    return [p.model_dump(by_alias=True) for p in load_personas(settings.personas_file)]


@app.get("/api/products")
def list_products():
    return [p.model_dump(by_alias=True) for p in DEFAULT_PRODUCT_DESCRIPTIONS]


@app.get("/api/ads")
def list_ads(library: AdLibrary = Depends(get_ad_library)):
    return [{"name": a.name, "url": a.url_path, "sha256": a.sha256} for a in library.list_ads()]


@app.post("/api/generate-image")
async def generate_image(request: Request, provider: Provider = Depends(get_provider)):
    body = await _read_json(request)
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="request body must be a JSON object")

    prompt = body.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        raise HTTPException(status_code=400, detail="Prompt is required")

    quality = _parse_quality(body.get("quality"))
    max_attempts = body.get("maxAttempts")
    if max_attempts is not None and (isinstance(max_attempts, bool) or not isinstance(max_attempts, int)):
        raise HTTPException(status_code=400, detail="maxAttempts must be an integer")

    try:
        loop = RefinementLoop(
            provider,
            max_attempts=max_attempts,
            initial_quality=quality,
            edit_quality=quality,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    logger.info("refinement requested: max_attempts=%s quality=%s", loop.max_attempts, quality or "default")
    return event_stream_response(loop.run(prompt))


@app.post("/api/optimize-for-personas")
async def optimize_for_personas(request: Request, provider: Provider = Depends(get_provider)):
    body = await _read_json(request)
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="request body must be a JSON object")

    original_image = body.get("originalImage")
    prompt = body.get("prompt")
    if not original_image or not prompt or not isinstance(body.get("personas"), list):
        raise HTTPException(status_code=400, detail="Original image, prompt, and personas array are required")
    if not isinstance(original_image, str) or not isinstance(prompt, str):
        raise HTTPException(status_code=400, detail="originalImage and prompt must be strings")

    personas = _parse_personas(body["personas"])
    quality = _parse_quality(body.get("quality"))

    variator = PersonaImageVariator(provider)
    try:
        batch = await variator.run(original_image, prompt, personas, quality=quality)
    except ImageDecodeError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return batch.payload()


@app.post("/api/variate")
async def variate(
    request: Request,
    provider_factory: Callable[[], Provider] = Depends(get_provider_factory),
    library: AdLibrary = Depends(get_ad_library),
):
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return JSONResponse({"success": False, "message": "Request body must be JSON."}, status_code=400)

    try:
        copy_request = parse_copy_request(body, library)
    except InvalidCopyRequest as exc:
        return JSONResponse({"success": False, "message": str(exc)}, status_code=400)

    # Key check runs after request validation.
    try:
        provider = provider_factory()
    except HTTPException as exc:
        return JSONResponse({"success": False, "message": exc.detail}, status_code=exc.status_code)

    logger.info(
        "copy variation requested: %s persona(s), product description %s chars",
        len(copy_request.personas),
        len(copy_request.product_description),
    )

    pipeline = CopyVariationPipeline(provider)
    try:
        result = await pipeline.run(copy_request)
    except AdAnalysisError as exc:
        logger.warning("ad analysis failed: %s", exc)
        return JSONResponse(
            {"success": False, "message": f"Ad image analysis is required to generate variations: {exc}"},
            status_code=502,
        )
    except Exception as exc:
        logger.exception("copy variation failed")
        return JSONResponse({"success": False, "message": f"Error processing request: {exc}"}, status_code=500)
    return result.payload()
