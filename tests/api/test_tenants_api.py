"""Tests for tenant listing, creation and auto-provisioning."""

import pytest
from sqlalchemy import select

from conftest import auth_headers_for, make_user
from renderops_server.auth import Role
from renderops_server.db.models import Tenant, TenantMembership


class TestMyTenant:
    """GET /api/tenants/my"""

    @pytest.mark.asyncio
    async def test_provisions_personal_tenant(self, client, user, auth_headers, session_factory):
        response = await client.get("/api/tenants/my", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Alice's Workspace"
        assert body["slug"] == "alice-s-workspace"
        assert body["role"] == "OWNER"
        assert body["memberCount"] == 1

        async with session_factory() as session:
            memberships = (await session.execute(
                select(TenantMembership).where(TenantMembership.user_id == user.id)
            )).scalars().all()
        assert [m.role for m in memberships] == [Role.OWNER]

    @pytest.mark.asyncio
    async def test_provisioning_is_idempotent(self, client, auth_headers):
        first = await client.get("/api/tenants/my", headers=auth_headers)
        second = await client.get("/api/tenants/my", headers=auth_headers)
        assert first.json()["id"] == second.json()["id"]

    @pytest.mark.asyncio
    async def test_slug_collision_gets_suffix(self, client, db_session):
        db_session.add(Tenant(id="t-existing", name="Other", slug="alice-s-workspace"))
        await db_session.commit()
        alice = await make_user(db_session, "alice", full_name="Alice")

        response = await client.get("/api/tenants/my", headers=auth_headers_for(alice))
        assert response.json()["slug"] == "alice-s-workspace-1"

    @pytest.mark.asyncio
    async def test_existing_tenant_is_returned(self, client, tenant, auth_headers):
        response = await client.get("/api/tenants/my", headers=auth_headers)
        assert response.json()["id"] == tenant.id
        assert response.json()["name"] == "Acme"


class TestListTenants:
    """GET /api/tenants"""

    @pytest.mark.asyncio
    async def test_lists_memberships_with_counts(self, client, tenant, connection, auth_headers, member_factory):
        await member_factory("bob", Role.VIEWER)

        response = await client.get("/api/tenants", headers=auth_headers)

        assert response.status_code == 200
        [item] = response.json()
        assert item["slug"] == "acme"
        assert item["role"] == "OWNER"
        assert item["memberCount"] == 2
        assert item["connectionCount"] == 1

    @pytest.mark.asyncio
    async def test_no_memberships(self, client, auth_headers):
        response = await client.get("/api/tenants", headers=auth_headers)
        assert response.json() == []


class TestCreateTenant:
    """POST /api/tenants"""

    @pytest.mark.asyncio
    async def test_create_derives_slug(self, client, auth_headers):
        response = await client.post("/api/tenants", headers=auth_headers, json={"name": "New Co"})
        assert response.status_code == 201
        assert response.json()["slug"] == "new-co"
        assert response.json()["role"] == "OWNER"

    @pytest.mark.asyncio
    async def test_already_member(self, client, tenant, auth_headers):
        response = await client.post("/api/tenants", headers=auth_headers, json={"name": "Second"})
        assert response.status_code == 400
        assert "Multi-tenant membership is not supported" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_slug_in_use(self, client, tenant, db_session):
        bob = await make_user(db_session, "bob")
        response = await client.post(
            "/api/tenants", headers=auth_headers_for(bob), json={"name": "Acme 2", "slug": "acme"}
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "Slug already in use"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"name": ""},
        {"name": "Ok", "slug": "Bad Slug"},
        {"name": "Ok", "slug": "ab"},
    ])
    async def test_invalid_payload(self, client, auth_headers, payload):
        response = await client.post("/api/tenants", headers=auth_headers, json=payload)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_name_without_slug_characters(self, client, auth_headers):
        response = await client.post("/api/tenants", headers=auth_headers, json={"name": "!!!"})
        assert response.status_code == 400
