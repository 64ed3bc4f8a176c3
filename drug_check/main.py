"""
Drug Check Service - FastAPI Backend
Gemini-powered drug identification, prescription verification and drug info.

Every endpoint runs the same pipeline:
  validate -> prompt Gemini -> parse reply -> respond
with no retries and no state shared between requests.
"""
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Optional, Protocol

from fastapi import APIRouter, Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings
from .errors import (
    ClientInputError,
    ForbiddenOriginError,
    ResponseParseError,
    ServiceError,
    UpstreamModelError,
)
from .gemini_client import GeminiClient, InlineImage
from .middleware import BodySizeLimitMiddleware
from .models import (
    DrugInfoRequest,
    DrugInfoResponse,
    IdentifiedDrug,
    IdentifyRequest,
    IdentifyResponse,
    VerifyRequest,
)
from .parsing import build_verification_result, parse_identified_drugs
from .prompts import IDENTIFY_PROMPT, build_drug_info_prompt, build_verify_prompt
from .structured_logging import get_logger, log_request, set_request_id, setup_logging

logger = get_logger("api")

IDENTIFY_FAILED = "薬剤の識別中にエラーが発生しました。"
VERIFY_FAILED = "処方箋の照合中にエラーが発生しました。"
DRUG_INFO_FAILED = "薬剤情報の取得中にエラーが発生しました。"
MALFORMED_BODY = "リクエストの形式が正しくありません。"
ORIGIN_NOT_ALLOWED = "このオリジンからのリクエストは許可されていません。"


class ModelClient(Protocol):
    async def generate(self, prompt: str, image: Optional[InlineImage] = None) -> str: ...


async def _call_model(
    request: Request,
    endpoint_name: str,
    failure_message: str,
    prompt: str,
    image: Optional[InlineImage] = None,
) -> str:
    """Run one Gemini call; any failure becomes an UpstreamModelError."""
    model: ModelClient = request.app.state.model
    start_time = time.time()
    try:
        text = await model.generate(prompt, image=image)
    except Exception as e:
        logger.exception(f"{endpoint_name} model call failed", error=str(e))
        raise UpstreamModelError(failure_message) from e

    logger.info(
        f"{endpoint_name} model call completed",
        duration_ms=round((time.time() - start_time) * 1000, 2),
        response_chars=len(text),
    )
    return text


router = APIRouter()


@router.post("/identify", response_model=IdentifyResponse, response_model_exclude_none=True)
async def identify(request: Request, payload: Any = Body(default=None)):
    """Identify drug names and quantities in a photo."""
    body = IdentifyRequest.from_payload(payload)
    image = InlineImage(data=body.imageData, mime_type=body.mimeType)

    text = await _call_model(request, "identify", IDENTIFY_FAILED, IDENTIFY_PROMPT, image)

    identified = parse_identified_drugs(text)
    logger.info("identify completed", drugs=len(identified))
    return IdentifyResponse(
        identifiedDrugs=[IdentifiedDrug(**drug) for drug in identified],
        rawResponse=text,
    )


@router.post("/verify")
async def verify(request: Request, payload: Any = Body(default=None)):
    """Cross-check an identified drug list against a prescription image."""
    body = VerifyRequest.from_payload(payload)
    prompt = build_verify_prompt(body.identifiedDrugs, body.timing)
    image = InlineImage(data=body.prescriptionImageData, mime_type=body.prescriptionMimeType)

    text = await _call_model(request, "verify", VERIFY_FAILED, prompt, image)

    try:
        result = build_verification_result(text, body.identifiedDrugs)
    except ResponseParseError as e:
        logger.error("verify response could not be parsed", detail=e.detail, raw_response=text)
        raise

    logger.info("verify completed", overall_status_color=result["overallStatusColor"])
    return JSONResponse(result)


@router.post("/drug-info", response_model=DrugInfoResponse)
async def drug_info(request: Request, payload: Any = Body(default=None)):
    """Plain-language summary of a drug, returned verbatim."""
    body = DrugInfoRequest.from_payload(payload)

    text = await _call_model(
        request, "drug-info", DRUG_INFO_FAILED, build_drug_info_prompt(body.drugName)
    )
    return DrugInfoResponse(details=text)


def create_app(settings: Optional[Settings] = None, model: Optional[ModelClient] = None) -> FastAPI:
    """Build the ASGI app.

    Args:
        settings: Service configuration (default: read from the environment)
        model: Model client; when omitted a GeminiClient is created and
            initialized on startup
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(level=settings.log_level, use_json=settings.log_json)
        logger.info("Starting Drug Check Service...")
        if isinstance(app.state.model, GeminiClient) and not app.state.model.ready:
            try:
                app.state.model.initialize(settings.gemini_api_key)
            except RuntimeError as e:
                logger.warning(f"Gemini not available: {e}")
                logger.warning("Model calls will fail until an API key is configured.")
        logger.info("Ready to serve requests.")
        yield
        logger.info("Shutting down...")

    app = FastAPI(
        title="Drug Check Service",
        description="Gemini-powered drug identification and prescription verification API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.model = model or GeminiClient(
        model_name=settings.gemini_model,
        timeout_seconds=settings.gemini_timeout_seconds,
    )

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(exc.to_payload(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def malformed_body_handler(request: Request, exc: RequestValidationError):
        # Only reachable for bodies that are not valid JSON at all
        logger.warning("Malformed request body", path=request.url.path, errors=str(exc.errors()))
        return JSONResponse(ClientInputError(MALFORMED_BODY).to_payload(), status_code=400)

    # Middleware runs outermost-last: CORS -> request log -> origin check -> body limit
    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_body_bytes)

    allow_any_origin = "*" in settings.allowed_origins

    @app.middleware("http")
    async def origin_check_middleware(request: Request, call_next):
        """Refuse cross-origin requests from outside the allow-list."""
        origin = request.headers.get("origin")
        if origin and not allow_any_origin and origin not in settings.allowed_origins:
            logger.warning("Origin not allowed", origin=origin, path=request.url.path)
            exc = ForbiddenOriginError(ORIGIN_NOT_ALLOWED)
            return JSONResponse(exc.to_payload(), status_code=exc.status_code)
        return await call_next(request)

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        """Middleware for request ID tracking and logging."""
        start_time = time.time()
        request_id = set_request_id(request.headers.get("X-Request-ID"))

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        if request.url.path not in ["/health", "/docs", "/openapi.json"]:
            log_request(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=duration_ms,
                client_ip=request.client.host if request.client else None,
            )

        response.headers["X-Request-ID"] = request_id
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    @app.get("/health")
    async def health():
        model_client = app.state.model
        return {
            "status": "healthy",
            "model": settings.gemini_model,
            "model_ready": getattr(model_client, "ready", True),
        }

    app.include_router(router)
    # The original frontend calls the same endpoints under /api
    app.include_router(router, prefix="/api")
    return app


def run():
    """Console entrypoint: serve with uvicorn (logging is set up on startup)."""
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


app = create_app()


if __name__ == "__main__":
    run()
