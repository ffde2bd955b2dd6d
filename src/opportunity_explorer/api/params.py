"""Helpers shared by the guarded API routers."""

from typing import Optional

from fastapi import HTTPException
from pydantic import ValidationError
from starlette.requests import Request

from opportunity_explorer.api.schemas import SaveIdeaRequest
from opportunity_explorer.interfaces.opportunity_store import OpportunityStorePort


def get_store(request: Request) -> OpportunityStorePort:
    return request.app.state.opportunity_store


def int_param(
    request: Request,
    name: str,
    default: int,
    minimum: int = 0,
    maximum: Optional[int] = None,
) -> int:
    """
    Read an integer query parameter clamped to ``[minimum, maximum]``.

    Absent or malformed values fall back to the default.
    """
    raw = request.query_params.get(name)
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        value = default
    value = max(value, minimum)
    if maximum is not None:
        value = min(value, maximum)
    return value


def limit_param(request: Request, default: int, maximum: int) -> int:
    return int_param(request, "limit", default, minimum=1, maximum=maximum)


def offset_param(request: Request) -> int:
    return int_param(request, "offset", 0, minimum=0)


async def read_save_request(request: Request) -> SaveIdeaRequest:
    try:
        body = await request.json()
        payload = SaveIdeaRequest.model_validate(body)
    except (ValueError, ValidationError):
        raise HTTPException(status_code=400, detail="Invalid request body")

    if payload.idea_id is None:
        raise HTTPException(status_code=400, detail="Idea ID is required")
    return payload
