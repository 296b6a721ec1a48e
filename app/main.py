from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.auth import router as auth_router
from app.api.convert import router as convert_router
from app.api.downloads import router as downloads_router
from app.core.config import get_settings
from app.core.errors import DeliveryError, InputError, RenderError
from app.core.logging import get_logger, setup_logging

logger = get_logger(__name__)

app = FastAPI(title="Markdown to PDF Service")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(convert_router)
app.include_router(auth_router)
app.include_router(downloads_router)


@app.on_event("startup")
def _startup() -> None:
    settings = get_settings()
    setup_logging(level=settings.log_level)
    logger.info(
        "Starting with response_mode=%s, storage_backends=%s",
        settings.response_mode,
        ",".join(settings.storage_backends),
    )


@app.exception_handler(InputError)
async def _input_error(_request: Request, exc: InputError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(RenderError)
async def _render_error(_request: Request, exc: RenderError) -> JSONResponse:
    logger.error("Error converting markdown to PDF: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Failed to convert markdown to PDF"},
    )


@app.exception_handler(DeliveryError)
async def _delivery_error(_request: Request, exc: DeliveryError) -> JSONResponse:
    logger.error("Delivery failed: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": "Storage is unavailable. Please try again later."},
    )


@app.exception_handler(StarletteHTTPException)
async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": messages})


@app.get("/")
def root() -> dict:
    return {"status": "server is up"}


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
