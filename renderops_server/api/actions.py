"""Server action execution endpoint."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from nanoid import generate
from opentelemetry import trace
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from renderops_server import actions as action_registry
from renderops_server.actions import ActionParams, ActionResult
from renderops_server.actions.rate_limit import RateLimiter
from renderops_server.auth import User, get_current_user, get_tenant_context
from renderops_server.auth.permissions import (
    MUTATING_ACTIONS,
    get_action_permission,
    has_permission,
)
from renderops_server.config import get_settings
from renderops_server.db.models import AuditLog, Connection
from renderops_server.db.session import get_db
from renderops_server.tenancy import TenantContext

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

router = APIRouter(prefix="/actions", tags=["actions"])

_settings = get_settings()
rate_limiter = RateLimiter(
    window_ms=_settings.rate_limit_window_ms,
    max_requests=_settings.rate_limit_max_requests,
)


class ExecuteRequest(BaseModel):
    action: str = Field(..., min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)


def _failure(status_code: int, error: str, headers: Optional[dict[str, str]] = None, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, **extra},
        headers=headers,
    )


async def _write_audit_log(
    db: AsyncSession,
    tenant_id: Optional[str],
    user_id: str,
    action: str,
    params: dict[str, Any],
    result: Optional[ActionResult],
) -> None:
    db.add(AuditLog(
        id=generate(size=12),
        tenant_id=tenant_id,
        user_id=user_id,
        action_name=action,
        params=params,
        success=bool(result and result.success),
        error=result.error if result else "Action did not complete",
    ))
    await db.commit()


@router.post("/execute")
async def execute_action(
    request: ExecuteRequest,
    current_user: User = Depends(get_current_user),
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """
    Run a registered server action for the current user.

    Requests are rate limited per user, checked against the member's role and
    the connection's readonly flag, and recorded in the audit log whether or
    not the handler succeeds.
    """
    decision = rate_limiter.check(current_user.id)
    if not decision.allowed:
        return _failure(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "Too many requests. Please try again later.",
            headers={
                "Retry-After": str(decision.retry_after),
                "X-RateLimit-Remaining": "0",
            },
        )
    rate_headers = {"X-RateLimit-Remaining": str(decision.remaining)}

    action = request.action
    if not action_registry.is_valid_action(action):
        return _failure(
            status.HTTP_400_BAD_REQUEST,
            f"Unknown action: {action}",
            headers=rate_headers,
            availableActions=action_registry.get_available_actions(),
        )

    try:
        params = ActionParams.model_validate(request.params)
    except ValidationError as e:
        return _failure(
            status.HTTP_400_BAD_REQUEST,
            "Invalid action parameters",
            headers=rate_headers,
            details=[err["msg"] for err in e.errors()],
        )

    if not has_permission(context.role, get_action_permission(action)):
        return _failure(status.HTTP_403_FORBIDDEN, "Insufficient permissions", headers=rate_headers)

    connection_string = None
    if params.connection_id:
        result = await db.execute(
            select(Connection).where(
                Connection.id == params.connection_id,
                Connection.tenant_id == context.tenant_id,
            )
        )
        connection = result.scalar_one_or_none()
        if connection is None:
            return _failure(
                status.HTTP_404_NOT_FOUND,
                "Connection not found or access denied",
                headers=rate_headers,
            )
        if connection.readonly and action in MUTATING_ACTIONS:
            return _failure(
                status.HTTP_403_FORBIDDEN,
                "This connection is read-only",
                headers=rate_headers,
            )
        connection_string = connection.connection_string

    handler = action_registry.ACTION_HANDLERS[action]
    action_result: Optional[ActionResult] = None
    try:
        with tracer.start_as_current_span("action.execute") as span:
            span.set_attribute("action.name", action)
            span.set_attribute("tenant.id", context.tenant_id)
            action_result = await handler(params, current_user.id, connection_string)
            span.set_attribute("action.success", action_result.success)
    except Exception as e:
        logger.error("Action %s failed: %s", action, e, exc_info=True)
        action_result = ActionResult.fail(str(e) or "Internal server error")
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            action_result.error,
            headers=rate_headers,
        )
    finally:
        await _write_audit_log(
            db,
            context.tenant_id,
            current_user.id,
            action,
            request.params,
            action_result,
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK if action_result.success else status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(action_result.to_dict()),
        headers=rate_headers,
    )
