"""Integration tests for the public product catalog."""

import uuid
from decimal import Decimal

import pytest
from tests.factories import ProductFactory, ProductVariationFactory


@pytest.fixture
def catalog(db_session):
    """Three active products and one inactive product."""

    async def _build():
        products = [
            ProductFactory.create(
                name="Arctic Mint", flavor="Mint", price=Decimal("15.00")
            ),
            ProductFactory.create(
                name="Wintergreen Snap",
                flavor="Wintergreen",
                price=Decimal("12.50"),
                strength=12,
            ),
            ProductFactory.create(
                name="Citrus Rush",
                flavor="Citrus",
                category="Limited",
                price=Decimal("20.00"),
            ),
            ProductFactory.create(name="Retired Mint", flavor="Mint", is_active=False),
        ]
        db_session.add_all(products)
        await db_session.commit()
        return products

    return _build


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_active_products_only(client, catalog):
    await catalog()

    response = await client.get("/api/products")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert {p["name"] for p in data["products"]} == {
        "Arctic Mint",
        "Wintergreen Snap",
        "Citrus Rush",
    }


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize(
    "params, expected",
    [
        ({"category": "Limited"}, ["Citrus Rush"]),
        ({"flavor": "mint"}, ["Arctic Mint"]),
        ({"strength": 12}, ["Wintergreen Snap"]),
        ({"min_price": "14", "max_price": "16"}, ["Arctic Mint"]),
        ({"search": "snap"}, ["Wintergreen Snap"]),
        (
            {"sort_by": "price", "sort_order": "asc"},
            ["Wintergreen Snap", "Arctic Mint", "Citrus Rush"],
        ),
        (
            {"sort_by": "name", "sort_order": "desc"},
            ["Wintergreen Snap", "Citrus Rush", "Arctic Mint"],
        ),
    ],
)
async def test_list_products_filters_and_sorting(client, catalog, params, expected):
    await catalog()

    response = await client.get("/api/products", params=params)

    assert response.status_code == 200
    assert [p["name"] for p in response.json()["products"]] == expected


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_products_pagination(client, catalog):
    await catalog()

    response = await client.get(
        "/api/products", params={"limit": 2, "page": 2, "sort_by": "name"}
    )
    data = response.json()
    assert data["page"] == 2
    assert data["total_pages"] == 2
    assert len(data["products"]) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_product_detail_reports_stock_and_active_variations(
    client, db_session, product, variation
):
    db_session.add(
        ProductVariationFactory.create(
            product_id=product.id, name="Old tin", strength=3, is_active=False
        )
    )
    await db_session.commit()

    response = await client.get(f"/api/products/{product.id}")

    assert response.status_code == 200
    data = response.json()
    assert data["available_stock"] == 120
    assert [v["sku"] for v in data["variations"]] == ["HP-MINT-12"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_inactive_or_unknown_product_is_404(client, catalog):
    products = await catalog()
    retired = products[-1]

    response = await client.get(f"/api/products/{retired.id}")
    assert response.status_code == 404

    response = await client.get(f"/api/products/{uuid.uuid4()}")
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_related_products(client, db_session):
    base = ProductFactory.create(name="Base", category="Pouches", flavor="Mint")
    same_category = ProductFactory.create(
        name="Same Category", category="Pouches", flavor="Berry"
    )
    same_flavor = ProductFactory.create(
        name="Same Flavor", category="Limited", flavor="Mint"
    )
    unrelated = ProductFactory.create(
        name="Unrelated", category="Limited", flavor="Cola"
    )
    db_session.add_all([base, same_category, same_flavor, unrelated])
    await db_session.commit()

    response = await client.get(f"/api/products/{base.id}/related")

    assert response.status_code == 200
    assert [p["name"] for p in response.json()] == ["Same Category", "Same Flavor"]
