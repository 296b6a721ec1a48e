import asyncio

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import ValidationError

from app.core.config import Settings, get_settings
from app.core.errors import InputError
from app.models.convert import ConvertRequest, ConvertResponse, ErrorResponse
from app.services.delivery import DeliveryPipeline, get_delivery_pipeline
from app.services.renderer import render

router = APIRouter(tags=["conversion"])

JSON_FORMAT_HINT = (
    'Invalid JSON format. Please provide markdown content as {"markdown": "Your markdown here"}'
)


def _media_type(content_type: str | None) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def parse_markdown_body(content_type: str | None, body: bytes) -> str:
    """Extract markdown text from a JSON or text/markdown request body.

    Raises:
        InputError: For unsupported content types or missing/empty markdown.
    """
    media_type = _media_type(content_type)

    if media_type == "application/json":
        try:
            payload = ConvertRequest.model_validate_json(body)
        except ValidationError as exc:
            raise InputError(JSON_FORMAT_HINT) from exc
        if payload.markdown is None:
            raise InputError(JSON_FORMAT_HINT)
        markdown = payload.markdown
    elif media_type == "text/markdown":
        try:
            markdown = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InputError("Markdown body must be UTF-8 encoded.") from exc
    else:
        raise InputError(
            f"Unsupported content type '{media_type or 'none'}'. "
            "Use application/json or text/markdown.",
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
        )

    if not markdown or not markdown.strip():
        raise InputError("Markdown content is required")
    return markdown


@router.post(
    "/convert",
    response_model=ConvertResponse,
    response_model_exclude_none=True,
    responses={
        200: {"content": {"application/pdf": {}}},
        400: {"model": ErrorResponse},
        415: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def convert_markdown(
    request: Request,
    settings: Settings = Depends(get_settings),
    pipeline: DeliveryPipeline = Depends(get_delivery_pipeline),
):
    """Convert markdown to PDF and return a download link (or the PDF itself).

    Accepts ``application/json`` bodies of the form ``{"markdown": "..."}`` or raw
    ``text/markdown``. With RESPONSE_MODE=direct the PDF bytes are returned as an
    attachment instead of being uploaded.
    """
    markdown = parse_markdown_body(request.headers.get("content-type"), await request.body())

    rendered = await asyncio.to_thread(render, markdown)

    if settings.response_mode == "direct":
        return Response(
            content=rendered.content,
            media_type="application/pdf",
            headers={"Content-Disposition": "attachment; filename=converted.pdf"},
        )

    result = await pipeline.deliver(rendered.content, rendered.title)
    return ConvertResponse(download_url=result.url, source=result.source, warning=result.warning)
