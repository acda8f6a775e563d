"""UI tree generation, preview rendering and validation."""

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from renderops_server.api.connections import get_tenant_connection, require_permission
from renderops_server.auth import User, get_optional_user, get_tenant_context
from renderops_server.auth.permissions import has_permission
from renderops_server.config import get_settings
from renderops_server.database import get_table_schema
from renderops_server.db.session import get_db
from renderops_server.tenancy import TenantContext
from renderops_server.ui import UISession, parse_tree
from renderops_server.ui.catalog import validate_tree
from renderops_server.ui.elements import TreeInput
from renderops_server.ui.generator import ColumnDictionary, generate_crud_ui, generate_list_ui

router = APIRouter(prefix="/ui", tags=["ui"])


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    connection_id: str = Field(..., alias="connectionId")
    table: str
    mode: Literal["crud", "list"] = "crud"
    dictionary: List[Dict[str, Any]] = Field(default_factory=list)


class RenderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tree: Any = None
    data: Dict[str, Any] = Field(default_factory=dict)
    is_authenticated: Optional[bool] = Field(default=None, alias="isAuthenticated")


class ValidateRequest(BaseModel):
    tree: Any = None


def _parse(raw: Any) -> TreeInput:
    try:
        return parse_tree(raw)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid UI tree: {e.error_count()} error(s)",
        )


@router.post("/generate")
async def generate_ui(
    request: GenerateRequest,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """
    Generate a UI tree for a table of a saved connection.

    Mutating controls are left out when the connection is readonly or the
    member cannot create records.
    """
    require_permission(context, "read")
    connection = await get_tenant_connection(db, request.connection_id, context.tenant_id)
    schema = await get_table_schema(connection.connection_string, request.table)

    dictionary = {
        entry.column_name: entry
        for entry in (ColumnDictionary.from_dict(raw) for raw in request.dictionary)
        if entry.column_name
    }
    readonly = bool(connection.readonly) or not has_permission(context.role, "create")

    if request.mode == "list":
        tree = generate_list_ui(schema, connection.id, dictionary)
    else:
        tree = generate_crud_ui(
            schema,
            connection.id,
            readonly=readonly,
            dictionary=dictionary,
            currency_prefix=get_settings().ui_currency_prefix,
        )

    return {
        "tree": tree.to_dict(),
        "schema": schema.to_dict(),
        "readonly": readonly,
    }


@router.post("/render")
async def render_ui(
    request: RenderRequest,
    current_user: Optional[User] = Depends(get_optional_user),
):
    """Render a tree against a data snapshot and report unknown components."""
    tree = _parse(request.tree)
    is_authenticated = request.is_authenticated
    if is_authenticated is None:
        is_authenticated = current_user is not None

    session = UISession(initial_data=request.data, is_authenticated=is_authenticated)
    nodes = session.render(tree)
    return jsonable_encoder({
        "nodes": [node.to_dict() for node in nodes],
        "diagnostics": [
            {"key": d.key, "type": d.type, "message": d.message}
            for d in session.diagnostics
        ],
    })


@router.post("/validate")
async def validate_ui(request: ValidateRequest):
    tree = _parse(request.tree)
    issues = validate_tree(tree)
    return {"valid": not issues, "issues": [issue.to_dict() for issue in issues]}
