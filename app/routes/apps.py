"""
Read-only application endpoints scoped to the caller's visibility.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from core.context import RequestContext
from core.services import apps as app_service
from app.deps import get_request_context


router = APIRouter(prefix="/v3/apps")


def _raise_for_error(result: dict) -> dict:
    if result.get("status") != "error":
        return result
    errors = result.get("errors") or []
    if any(error.get("error_type") == "not_found" for error in errors):
        raise HTTPException(status_code=404, detail=result.get("message"))
    raise HTTPException(status_code=422, detail=errors)


def _split(value: Optional[str]) -> Optional[list[str]]:
    if not value:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


@router.get("")
def list_apps(
    space_guids: Optional[str] = Query(default=None),
    names: Optional[str] = Query(default=None),
    per_page: int = Query(default=50),
    context: RequestContext = Depends(get_request_context),
):
    result = app_service.list_apps(
        space_guids=_split(space_guids),
        names=_split(names),
        limit=per_page,
        context=context,
    )
    _raise_for_error(result)
    return {"pagination": {"total_results": result["count"]}, "resources": result["apps"]}


@router.get("/{app_guid}")
def get_app(
    app_guid: str,
    context: RequestContext = Depends(get_request_context),
):
    result = _raise_for_error(app_service.get_app(app_guid=app_guid, context=context))
    result.pop("status", None)
    return result


@router.get("/{app_guid}/events")
def list_app_events(
    app_guid: str,
    per_page: int = Query(default=50),
    cursor: Optional[str] = Query(default=None),
    context: RequestContext = Depends(get_request_context),
):
    result = _raise_for_error(
        app_service.list_app_events(app_guid=app_guid, limit=per_page, cursor=cursor, context=context)
    )
    return {
        "pagination": {"total_results": result["count"], "next_cursor": result["next_cursor"]},
        "resources": result["events"],
    }
