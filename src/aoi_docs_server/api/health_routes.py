from fastapi import APIRouter
from sqlalchemy.engine import make_url

from ..config import settings

router = APIRouter(tags=["health"])

@router.get("/health")
def health():
    return {"status": "ok", "store": make_url(settings.database_url).get_backend_name()}
