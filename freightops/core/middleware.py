from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response, JSONResponse
import hashlib
from freightops.core.audit import audit_repo
from freightops.schemas.audit import AuditLogEntry, AuditStatus, ActionType
import logging
from typing import Callable

logger = logging.getLogger(__name__)

# Checked in order; first matching fragment wins
ACTION_TYPES = [
    ("/pdf", ActionType.PDF_DOWNLOAD),
    ("upload", ActionType.UPLOAD),
    ("/reports", ActionType.REPORT),
    ("explain", ActionType.EXPLAIN),
    ("/hq", ActionType.HQ),
    ("/banking/match", ActionType.MATCH),
    ("/banking", ActionType.BANKING),
    ("/payroll", ActionType.PAYROLL),
    ("/currency", ActionType.CURRENCY),
    ("/subscription", ActionType.SUBSCRIPTION),
    ("/health", ActionType.HEALTH_CHECK),
]

# HQ routes authenticate with X-HQ-Key instead of a tenant id
PUBLIC_PREFIXES = ["/health", "/docs", "/redoc", "/openapi.json", "/hq"]


def resolve_action_type(endpoint: str) -> ActionType:
    for fragment, action_type in ACTION_TYPES:
        if fragment in endpoint:
            return action_type
    return ActionType.UNKNOWN


def _save(entry: AuditLogEntry):
    try:
        audit_repo.save(entry)
    except Exception as e:
        logger.error(f"Audit Logging Failed: {e}")


class TenantAuditMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        endpoint = request.url.path
        method = request.method
        action_type = resolve_action_type(endpoint)

        tenant_id = request.headers.get("X-Tenant-ID")
        is_public = endpoint == "/" or any(endpoint.startswith(p) for p in PUBLIC_PREFIXES)

        logger.debug(f"Request to {endpoint}, tenant_id={tenant_id}, is_public={is_public}")

        if not tenant_id and not is_public:
            _save(AuditLogEntry(
                endpoint=endpoint,
                method=method,
                action_type=action_type,
                tenant_id="MISSING",
                status=AuditStatus.FAILURE
            ))
            return JSONResponse(status_code=400, content={"detail": "Missing tenant identifier"})

        if not tenant_id:
            tenant_id = "HQ" if endpoint.startswith("/hq") else "PUBLIC"

        request_body_bytes = await request.body()
        input_hash = hashlib.sha256(request_body_bytes).hexdigest()

        # Re-inject body for the downstream app
        async def receive():
            return {"type": "http.request", "body": request_body_bytes, "more_body": False}
        request._receive = receive

        status = AuditStatus.FAILURE
        output_hash = None

        try:
            response = await call_next(request)
            if 200 <= response.status_code < 300:
                status = AuditStatus.SUCCESS

            response_body_bytes = b""
            async for chunk in response.body_iterator:
                response_body_bytes += chunk
            output_hash = hashlib.sha256(response_body_bytes).hexdigest()

            response = Response(
                content=response_body_bytes,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type
            )
        finally:
            _save(AuditLogEntry(
                endpoint=endpoint,
                method=method,
                action_type=action_type,
                tenant_id=tenant_id,
                input_hash=input_hash,
                output_hash=output_hash,
                status=status
            ))

        return response
