import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import chat, scoring
from .completions import CompletionsClient, UpstreamError, get_completions
from .schemas import ChatResponse, ErrorResponse, HealthResponse, ScoreResponse, is_blank
from .settings import Settings, get_settings, settings

API_VERSION = "1.0.0"

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info(f"Starting News Feed Assistant API v{API_VERSION}")
    logger.info(f"Model: {settings.OPENAI_MODEL} (API key configured: {bool(settings.OPENAI_API_KEY)})")
    yield
    logger.info("Shutting down News Feed Assistant API")


app = FastAPI(title="News Feed Assistant API", version=API_VERSION, lifespan=lifespan)


# CORS: public front-end. The same three headers go on every response,
# preflight and error responses included.
@app.middleware("http")
async def add_cors_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException):
    if exc.status_code == 405:
        message = "Method not allowed"
    else:
        message = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": message})


# -----------------------------
# Helpers
# -----------------------------
def get_client(cfg: Settings = Depends(get_settings)) -> Optional[CompletionsClient]:
    return get_completions(cfg)


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message, **extra).model_dump(exclude_none=True),
    )


def _missing_key() -> JSONResponse:
    logger.error("Request rejected: OPENAI_API_KEY not set")
    return _error(500, "OPENAI_API_KEY is not set")


def _upstream_failed(label: str, exc: UpstreamError) -> JSONResponse:
    logger.error(f"OpenAI {label} error: {exc.status} {exc.body}")
    return _error(500, "OpenAI API error", status=exc.status)


async def _json_body(request: Request) -> Dict[str, Any]:
    """Request body as a JSON object; anything else counts as an empty body."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


# -----------------------------
# Routes
# -----------------------------
router = APIRouter()


@router.options("/news-chat")
@router.options("/positivity-score")
async def preflight() -> Response:
    return Response(status_code=200)


@router.post(
    "/news-chat",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def news_chat(
    request: Request,
    cfg: Settings = Depends(get_settings),
    client: Optional[CompletionsClient] = Depends(get_client),
):
    try:
        if not cfg.OPENAI_API_KEY or client is None:
            return _missing_key()

        body = await _json_body(request)
        question = body.get("question")
        articles = body.get("articles")
        if is_blank(question) or not isinstance(articles, list):
            logger.warning("news-chat: invalid body")
            return _error(400, "Body must include 'question' (string) and 'articles' (array)")

        try:
            answer = await chat.answer_question(question, articles, client)
        except UpstreamError as e:
            return _upstream_failed("chat", e)

        return ChatResponse(answer=answer)
    except Exception:
        logger.exception(f"Error in {request.url.path}")
        return _error(500, "Internal server error")


@router.post(
    "/positivity-score",
    response_model=ScoreResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def positivity_score(
    request: Request,
    cfg: Settings = Depends(get_settings),
    client: Optional[CompletionsClient] = Depends(get_client),
):
    try:
        if not cfg.OPENAI_API_KEY or client is None:
            return _missing_key()

        body = await _json_body(request)
        articles = body.get("articles")
        if not isinstance(articles, list) or not articles:
            logger.warning("positivity-score: invalid body")
            return _error(400, "Body must include non-empty 'articles' array")

        try:
            scores = await scoring.score_articles(articles, client)
        except UpstreamError as e:
            return _upstream_failed("scoring", e)
        except scoring.ScoringError as e:
            return _error(500, str(e))

        return ScoreResponse(scores=scores)
    except Exception:
        logger.exception(f"Error in {request.url.path}")
        return _error(500, "Internal server error")


# Served at the bare paths and under /api (the serverless deployment's prefix).
app.include_router(router)
app.include_router(router, prefix="/api")


@app.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok", version=API_VERSION)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="127.0.0.1", port=8000, log_level="info")
