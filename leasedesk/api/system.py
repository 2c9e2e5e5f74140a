from typing import Dict

from fastapi import APIRouter

from ..config import settings

router = APIRouter()


@router.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok", "app": settings.app_name}
