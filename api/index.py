import base64
from datetime import datetime
import logging
import os
from pathlib import Path
import sys

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

# Ensure local src package is importable in serverless runtime.
ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from api.ai_request_logging import AiRequestLogger, AiRequestLoggingConfig  # noqa: E402
from menu_lens import extract_menu  # noqa: E402
from menu_lens.exceptions import (  # noqa: E402
    AuthenticationError,
    ImageError,
    ModelCallError,
    NoDishesDetectedError,
    RateLimitError,
)
from menu_lens.providers.base import EncodedImage  # noqa: E402
from menu_lens.schema import MenuExtractionResult, NormalizedMenuItem  # noqa: E402

app = FastAPI(title="menu-lens API", version="1.0.0")
logger = logging.getLogger(__name__)
AI_REQUEST_LOGGER = AiRequestLogger(AiRequestLoggingConfig.from_env())

raw_origins = os.getenv("FRONTEND_ORIGINS", "*")
allow_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
try:
    MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", str(8 * 1024 * 1024)))
except ValueError:
    MAX_IMAGE_BYTES = 8 * 1024 * 1024
ALLOWED_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health() -> dict[str, bool]:
    return {"ok": True}


class MenuExtractRequest(BaseModel):
    menuImage: str


class NutritionResponse(BaseModel):
    calories: int | None = None
    aiReview: str | None = None


class MenuItemResponse(BaseModel):
    name: str
    description: str | None = None
    price: float | None = None
    section: str | None = None
    tags: list[str] = Field(default_factory=list)
    nutrition: NutritionResponse | None = None


class RoundResponse(BaseModel):
    batchIndex: int | None = None
    variant: str
    status: str
    itemCount: int = 0


class MenuMetadata(BaseModel):
    provider: str
    partial: bool = False
    variant: str | None = None
    rounds: list[RoundResponse] = Field(default_factory=list)


class MenuExtractResponse(BaseModel):
    menuItems: list[MenuItemResponse]
    generatedAt: datetime
    metadata: MenuMetadata


def _validate_payload_size(payload: bytes) -> None:
    if len(payload) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=413, detail="image too large")


def _validate_multipart_content_type(content_type: str | None) -> None:
    if not content_type:
        raise HTTPException(status_code=400, detail="image file is required")
    normalized = content_type.split(";")[0].strip().lower()
    if normalized not in ALLOWED_MIME_TYPES:
        raise HTTPException(status_code=400, detail="unsupported image content type")


def _decode_base64_image(image_base64: str) -> bytes:
    # Accepts raw base64 or a data URL: data:image/jpeg;base64,<payload>
    try:
        encoded = EncodedImage.from_base64(image_base64)
    except ImageError as exc:
        raise HTTPException(status_code=400, detail=f"invalid menuImage: {exc}") from exc
    if encoded.mime_type.lower() not in ALLOWED_MIME_TYPES:
        raise HTTPException(status_code=400, detail="unsupported image content type")

    try:
        payload = base64.b64decode(encoded.data, validate=True)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="invalid menuImage encoding") from exc

    if not payload:
        raise HTTPException(status_code=400, detail="empty file")
    _validate_payload_size(payload)

    return payload


def _to_item_response(item: NormalizedMenuItem) -> MenuItemResponse:
    nutrition = None
    if item.nutrition is not None:
        nutrition = NutritionResponse(calories=item.nutrition.calories, aiReview=item.nutrition.ai_review)
    return MenuItemResponse(
        name=item.name,
        description=item.description,
        price=item.price,
        section=item.section,
        tags=item.tags,
        nutrition=nutrition,
    )


def _to_response(result: MenuExtractionResult) -> MenuExtractResponse:
    return MenuExtractResponse(
        menuItems=[_to_item_response(item) for item in result.items],
        generatedAt=result.generated_at,
        metadata=MenuMetadata(
            provider=result.provider,
            variant=result.variant,
            partial=result.partial,
            rounds=[
                RoundResponse(
                    batchIndex=record.batch_index,
                    variant=record.variant,
                    status=record.status,
                    itemCount=record.item_count,
                )
                for record in result.rounds
            ],
        ),
    )


def _model_error_status(exc: ModelCallError) -> int:
    if isinstance(exc, AuthenticationError):
        return 401
    if isinstance(exc, RateLimitError):
        return 429
    logger.warning("menu extraction failed: %s", exc)
    return 502


@app.post("/menu/extract", response_model=MenuExtractResponse)
async def extract_menu_items(request: Request, image: UploadFile | None = File(default=None)) -> MenuExtractResponse:
    request_id = AI_REQUEST_LOGGER.new_request_id()
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            body = MenuExtractRequest.model_validate(await request.json())
        except Exception as exc:
            raise HTTPException(status_code=400, detail="menuImage is required in JSON body") from exc
        payload = _decode_base64_image(body.menuImage)
    else:
        if image is None:
            raise HTTPException(status_code=400, detail="image file is required")
        _validate_multipart_content_type(image.content_type)
        payload = await image.read()
        if not payload:
            raise HTTPException(status_code=400, detail="empty file")
        _validate_payload_size(payload)

    try:
        result = await run_in_threadpool(extract_menu, payload)
        await run_in_threadpool(AI_REQUEST_LOGGER.log_rounds, request_id=request_id, rounds=result.rounds)
        if not result.items:
            raise NoDishesDetectedError()
        return _to_response(result)
    except NoDishesDetectedError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except ImageError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ModelCallError as exc:
        await run_in_threadpool(AI_REQUEST_LOGGER.log_rounds, request_id=request_id, rounds=exc.rounds)
        raise HTTPException(status_code=_model_error_status(exc), detail=str(exc)) from exc
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("menu extract failed")
        raise HTTPException(status_code=500, detail="internal_error") from exc
