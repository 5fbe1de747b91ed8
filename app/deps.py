"""
Dependency helpers for the standalone FastAPI app.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from core.context import AuthContext, RequestContext

USER_GUID_HEADER = "X-User-Guid"


async def get_auth_context(
    x_user_guid: Optional[str] = Header(default=None, alias=USER_GUID_HEADER),
) -> AuthContext:
    # Principal authentication happens upstream; the gateway forwards the user guid.
    if not x_user_guid or not x_user_guid.strip():
        raise HTTPException(status_code=401, detail="missing user identity")
    return AuthContext(user_guid=x_user_guid.strip(), actor="user")


async def get_request_context(
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
) -> RequestContext:
    return RequestContext(
        auth=auth,
        request_id=getattr(request.state, "request_id", None),
        source="http",
    )
