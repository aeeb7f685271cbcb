"""Integration tests for health probes, the audit log and error responses."""

import pytest
from services.store_service.models import AuditEntityType, AuditLog


@pytest.mark.asyncio
@pytest.mark.integration
async def test_liveness(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_readiness_checks_database(client):
    response = await client.get("/api/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["environment"] == "test"
    assert data["services"] == {"database": "ok", "api": "ok"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_audit_log_filters(client, db_session, admin_user, admin_headers):
    db_session.add_all(
        [
            AuditLog(
                entity_type=AuditEntityType.ORDER,
                entity_id="order-1",
                action="status_changed",
                performed_by=str(admin_user.id),
            ),
            AuditLog(
                entity_type=AuditEntityType.PRODUCT,
                entity_id="product-1",
                action="product_created",
                performed_by="system",
            ),
        ]
    )
    await db_session.commit()

    response = await client.get("/api/admin/logs", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 2

    response = await client.get(
        "/api/admin/logs", headers=admin_headers, params={"entity_type": "order"}
    )
    assert [log["action"] for log in response.json()["logs"]] == ["status_changed"]

    response = await client.get(
        "/api/admin/logs", headers=admin_headers, params={"performed_by": "system"}
    )
    assert [log["entity_id"] for log in response.json()["logs"]] == ["product-1"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_audit_log_requires_admin(client, customer_headers):
    response = await client.get("/api/admin/logs", headers=customer_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_validation_errors_use_common_envelope(client):
    response = await client.post("/api/auth/login", json={"email": "not-an-email"})

    assert response.status_code == 422
    body = response.json()
    assert body["message"] == "Invalid input data"
    assert isinstance(body["detail"], list)
