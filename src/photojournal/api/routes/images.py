"""Image listing, upload and deletion endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile

from photojournal.api.dependencies import get_gateway, resolve_principal
from photojournal.error_handling import ValidationError
from photojournal.logging_config import get_logger
from photojournal.models.upload import UploadCandidate, guess_content_type
from photojournal.services.storage import StorageGateway
from photojournal.services.validation import MISSING_FILE_MESSAGE

router = APIRouter(prefix="/api", tags=["images"])
logger = get_logger(__name__)


@router.get("/images")
def list_images(
    request: Request,
    user_id: str | None = Query(None, alias="userId"),
    gateway: StorageGateway = Depends(get_gateway),
) -> dict[str, Any]:
    principal = resolve_principal(request, user_id)
    images = gateway.list(principal)
    return {
        "success": True,
        "images": [image.to_dict() for image in images],
        "count": len(images),
    }


@router.post("/upload")
def upload_image(
    request: Request,
    file: UploadFile | None = File(None),
    user_id: str | None = Form(None, alias="userId"),
    gateway: StorageGateway = Depends(get_gateway),
) -> dict[str, Any]:
    if file is None or not file.filename:
        raise ValidationError("Upload request has no file", code="missing_file", user_message=MISSING_FILE_MESSAGE)

    principal = resolve_principal(request, user_id)
    candidate = UploadCandidate(
        filename=file.filename,
        # One byte past the limit is enough for validation to reject the file
        data=file.file.read(gateway.validator.max_size + 1),
        content_type=file.content_type or guess_content_type(file.filename),
    )
    stored = gateway.upload(candidate, principal)

    logger.info("api_upload_completed", user_id=principal.user_id, key=stored.filename, size=stored.size)
    return {"success": True, **stored.to_dict()}


@router.delete("/images/delete")
def delete_image(
    request: Request,
    url: str | None = Query(None),
    user_id: str | None = Query(None, alias="userId"),
    gateway: StorageGateway = Depends(get_gateway),
) -> dict[str, Any]:
    if not url:
        raise ValidationError("Delete request has no url", code="missing_url", user_message="No URL provided")

    principal = resolve_principal(request, user_id)
    gateway.delete(url, principal)
    return {"success": True}
