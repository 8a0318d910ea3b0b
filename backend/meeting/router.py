"""
Meeting-server proxy.

The browser never sees the API secret: it posts the JSON body here, the body
is signed server-side and forwarded as-is to ``{url}/auth/{path}``, and the
upstream status and JSON payload are relayed verbatim.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from core.gateway import AuthGateway, Principal, get_current_principal, get_gateway

router = APIRouter(prefix="/api/plugnmeet", tags=["meeting"])


async def raw_body(request: Request) -> bytes:
    """The exact request bytes; signing must cover what is forwarded."""
    return await request.body()


@router.post("/{endpoint:path}")
def proxy(
    endpoint: str,
    principal: Principal = Depends(get_current_principal),
    gateway: AuthGateway = Depends(get_gateway),
    body: bytes = Depends(raw_body),
):
    reply = gateway.proxy_signed_call(principal, endpoint, body)
    return JSONResponse(status_code=reply.status_code, content=reply.payload)
