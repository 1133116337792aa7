"""Health endpoint."""

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from photojournal.api.dependencies import get_gateway
from photojournal.health import get_health_status
from photojournal.services.storage import StorageGateway

router = APIRouter(tags=["health"])


@router.get("/health")
def health(gateway: StorageGateway = Depends(get_gateway)) -> Any:
    result = get_health_status(gateway)
    status_code = 200 if result["status"] == "healthy" else 503
    return JSONResponse(status_code=status_code, content=result)
