"""Integration tests for file uploads; storage calls are stubbed."""

import pytest
from services.store_service.routers import uploads
from services.store_service.services.storage import storage_service
from tests.factories import OrderFactory

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def stored(monkeypatch):
    """Capture uploads instead of sending them to the bucket."""
    calls = []

    async def fake_upload(path, data, content_type):
        calls.append((path, data, content_type))
        return f"https://cdn.example.com/{path}"

    monkeypatch.setattr(storage_service, "upload", fake_upload)
    return calls


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_without_storage_configured(client, admin_headers):
    response = await client.post(
        "/api/upload",
        headers=admin_headers,
        files={"file": ("mint.png", PNG, "image/png")},
    )
    assert response.status_code == 503


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_product_image(client, admin_user, admin_headers, stored):
    response = await client.post(
        "/api/upload",
        headers=admin_headers,
        data={"folder": "products"},
        files={"file": ("mint.png", PNG, "image/png")},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["path"].startswith(f"products/{admin_user.id}_")
    assert data["path"].endswith(".png")
    assert data["url"] == f"https://cdn.example.com/{data['path']}"
    assert stored[0][2] == "image/png"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_order_document(client, admin_headers, stored):
    response = await client.post(
        "/api/upload",
        headers=admin_headers,
        data={"order_id": "6f1c5c1e-5d7e-4a8f-9d8e-0c2f6f3b1a10", "type": "invoice"},
        files={"file": ("invoice.pdf", b"%PDF-1.4 test", "application/pdf")},
    )
    assert response.status_code == 200
    assert response.json()["path"].startswith(
        "orders/6f1c5c1e-5d7e-4a8f-9d8e-0c2f6f3b1a10/invoice_"
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_rejections(
    client, admin_headers, customer_headers, stored, monkeypatch
):
    response = await client.post(
        "/api/upload",
        headers=customer_headers,
        files={"file": ("mint.png", PNG, "image/png")},
    )
    assert response.status_code == 403

    response = await client.post(
        "/api/upload",
        headers=admin_headers,
        files={"file": ("run.sh", b"#!/bin/sh", "text/x-shellscript")},
    )
    assert response.status_code == 400

    response = await client.post(
        "/api/upload",
        headers=admin_headers,
        data={"type": "invoice"},
        files={"file": ("mint.png", PNG, "image/png")},
    )
    assert response.status_code == 400

    monkeypatch.setattr(uploads.settings, "UPLOAD_MAX_BYTES", 16)
    response = await client.post(
        "/api/upload",
        headers=admin_headers,
        files={"file": ("mint.png", PNG, "image/png")},
    )
    assert response.status_code == 413
    assert stored == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_extension_follows_content_type(
    client, admin_headers, stored, monkeypatch
):
    monkeypatch.setattr(uploads.settings, "UPLOAD_MAX_BYTES", len(PNG))

    response = await client.post(
        "/api/upload",
        headers=admin_headers,
        files={"file": ("mint.php", PNG, "image/png")},
    )

    assert response.status_code == 200
    assert response.json()["path"].endswith(".png")
    assert stored[0][0].endswith(".png")
    assert stored[0][1] == PNG


@pytest.mark.asyncio
@pytest.mark.integration
async def test_fulfillment_proof_requires_assignment(
    client, db_session, customer, distributor, distributor_headers, stored
):
    assigned = OrderFactory.create(customer.id, distributor_id=distributor.id)
    unassigned = OrderFactory.create(customer.id)
    db_session.add_all([assigned, unassigned])
    await db_session.commit()

    response = await client.post(
        "/api/upload-fulfillment",
        headers=distributor_headers,
        data={"order_id": str(unassigned.id)},
        files={"file": ("proof.jpg", b"\xff\xd8\xff" + b"\x00" * 16, "image/jpeg")},
    )
    assert response.status_code == 404

    response = await client.post(
        "/api/upload-fulfillment",
        headers=distributor_headers,
        data={"order_id": str(assigned.id)},
        files={"file": ("proof.jpg", b"\xff\xd8\xff" + b"\x00" * 16, "image/jpeg")},
    )
    assert response.status_code == 200
    assert response.json()["path"].startswith(f"orders/{assigned.id}/fulfillment_")
