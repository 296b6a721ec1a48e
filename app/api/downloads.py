from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from app.core.config import Settings, get_settings
from app.services.file_storage import resolve_download_path

router = APIRouter(tags=["downloads"])


@router.get("/downloads/{file_name}", response_class=FileResponse)
def download_pdf(file_name: str, settings: Settings = Depends(get_settings)) -> FileResponse:
    """Serve a PDF stored by the local filesystem backend."""
    file_path = resolve_download_path(settings.local_output_dir, file_name)
    if file_path is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found.")
    return FileResponse(file_path, media_type="application/pdf", filename=file_name)
