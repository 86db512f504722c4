"""
Dynamic data router: raw JSON documents stored per (user_id, key).

Endpoints:
  POST /api/dynamic/update/{user_id}/{key}  → create or overwrite (raw JSON body)
  GET  /api/dynamic/fetch/{user_id}/{key}   → stored JSON, verbatim

The body is read raw rather than through a Pydantic model so the stored text
is exactly what the client sent (key order, whitespace, nested types).
"""
import json
import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from app.database import get_db
from app.core.dependencies import get_current_user
from app.core.exceptions import NotFoundException
from app.models.user import User
from app.services import dynamic_data_service

logger = logging.getLogger(__name__)

router = APIRouter()

_RAW_JSON_BODY = {
    "requestBody": {
        "required": True,
        "content": {"application/json": {"schema": {}}},
    }
}


@router.post(
    "/update/{user_id}/{key}",
    response_class=PlainTextResponse,
    openapi_extra=_RAW_JSON_BODY,
    responses={201: {"description": "created"}, 200: {"description": "updated"}},
)
async def save_or_update(
    user_id: str,
    key: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    raw = await request.body()
    try:
        data = raw.decode("utf-8")
    except UnicodeDecodeError:
        return PlainTextResponse("JSON parse error: body is not valid UTF-8", status_code=400)

    if not data.strip():
        logger.warning("Empty dynamic data body for user_id=%s key=%s", user_id, key)
        return PlainTextResponse("Data cannot be null or empty", status_code=400)

    try:
        json.loads(data)
    except json.JSONDecodeError as exc:
        logger.warning("Invalid JSON for user_id=%s key=%s: %s", user_id, key, exc)
        return PlainTextResponse(f"JSON parse error: {exc}", status_code=400)

    _, created = dynamic_data_service.upsert_dynamic_data(
        db, user_id, key, data, updated_by=current_user.email
    )
    if created:
        return PlainTextResponse("created", status_code=201)
    return PlainTextResponse("updated", status_code=200)


@router.get("/fetch/{user_id}/{key}")
def fetch(
    user_id: str,
    key: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Returns the stored document as-is with a JSON content type."""
    record = dynamic_data_service.get_dynamic_data(db, user_id, key)
    if record is None:
        logger.info("No dynamic data for user_id=%s key=%s", user_id, key)
        raise NotFoundException("Dynamic data")
    return Response(content=record.data or "null", media_type="application/json")
