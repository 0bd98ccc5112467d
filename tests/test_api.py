"""HTTP tests: authorization, error mapping and the receive-to-shelf flow."""
import pytest
from sqlalchemy.exc import OperationalError

from backoffice.core.security import create_access_token
from backoffice.services.product_service import ProductService

from tests.conftest import ACTOR_ID, BUSINESS_ID, OTHER_BUSINESS_ID


API = f"/api/v1/businesses/{BUSINESS_ID}"


async def _first_shelf(client, headers, warehouse_id):
    zones = (await client.get(f"{API}/warehouses/{warehouse_id}/zones", headers=headers)).json()
    zone = zones["items"][0]
    racks = (await client.get(f"{API}/zones/{zone['id']}/racks", headers=headers)).json()
    rack = racks["items"][0]
    shelves = (await client.get(f"{API}/racks/{rack['id']}/shelves", headers=headers)).json()
    shelf = shelves["items"][0]
    return {
        "warehouse_id": warehouse_id,
        "zone_id": zone["id"],
        "rack_id": rack["id"],
        "shelf_id": shelf["id"],
    }


@pytest.fixture
async def http_grid(client, auth_headers):
    response = await client.post(f"{API}/warehouses/instant", headers=auth_headers, json={
        "name": "Main Warehouse", "zones": 1, "racks_per_zone": 2, "shelves_per_rack": 2,
    })
    assert response.status_code == 201
    return response.json()


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAuthorization:
    async def test_missing_token(self, client):
        response = await client.get(f"{API}/warehouses")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_garbage_token(self, client):
        response = await client.get(f"{API}/warehouses", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    async def test_other_business(self, client, auth_headers):
        response = await client.get(f"/api/v1/businesses/{OTHER_BUSINESS_ID}/warehouses", headers=auth_headers)
        assert response.status_code == 403

    async def test_businesses_are_isolated(self, client, auth_headers, http_grid):
        token = create_access_token(ACTOR_ID, businesses=[OTHER_BUSINESS_ID])
        other = {"Authorization": f"Bearer {token}"}

        response = await client.get(f"/api/v1/businesses/{OTHER_BUSINESS_ID}/warehouses", headers=other)
        assert response.status_code == 200
        assert response.json()["total"] == 0

        response = await client.get(
            f"/api/v1/businesses/{OTHER_BUSINESS_ID}/warehouses/{http_grid['warehouse_id']}", headers=other
        )
        assert response.status_code == 404


class TestErrorMapping:
    async def test_validation_error_body(self, client, auth_headers):
        response = await client.post(f"{API}/warehouses/instant", headers=auth_headers, json={
            "name": "Too big", "zones": 51, "racks_per_zone": 1, "shelves_per_rack": 1,
        })
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation Error"
        assert body["message"]
        assert isinstance(body["details"], dict)

    async def test_not_found(self, client, auth_headers):
        response = await client.get(f"{API}/products/NOPE/stock", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "Not Found"

    async def test_conflict(self, client, auth_headers):
        payload = {"sku": "WP-100", "name": "Water Purifier 100"}
        assert (await client.post(f"{API}/products", headers=auth_headers, json=payload)).status_code == 201
        response = await client.post(f"{API}/products", headers=auth_headers, json=payload)
        assert response.status_code == 409

    async def test_storage_failure_is_generic_500(self, client, auth_headers, monkeypatch):
        async def lost_connection(self, sku, for_update=False):
            raise OperationalError("SELECT products", {}, Exception("server closed the connection"))

        monkeypatch.setattr(ProductService, "get_by_sku", lost_connection)
        response = await client.post(f"{API}/products", headers=auth_headers, json={"sku": "WP-100", "name": "WP"})
        assert response.status_code == 500
        assert response.json() == {
            "error": "Internal Error",
            "message": "An unexpected error occurred",
            "details": {},
        }

    async def test_unknown_fields_rejected(self, client, auth_headers):
        response = await client.post(f"{API}/products", headers=auth_headers, json={
            "sku": "WP-100", "name": "Water Purifier 100", "colour": "blue",
        })
        assert response.status_code == 422


class TestStockOverHttp:
    async def test_inward_deduct_and_logs(self, client, auth_headers, http_grid):
        await client.post(f"{API}/products", headers=auth_headers,
                          json={"sku": "WP-100", "name": "Water Purifier 100", "opening_stock": 10})
        location = await _first_shelf(client, auth_headers, http_grid["warehouse_id"])

        response = await client.post(f"{API}/inventory/inward", headers=auth_headers,
                                     json={"sku": "WP-100", "qty": 5, **location})
        assert response.status_code == 200
        inward = response.json()
        assert inward["new_physical_stock"] == 15

        response = await client.post(f"{API}/inventory/deduct", headers=auth_headers, json={
            "sku": "WP-100", "qty": 2, "placement_id": inward["placement_id"], "reason": "damaged",
        })
        assert response.status_code == 200
        assert response.json()["remaining_placement_quantity"] == 3

        stock = (await client.get(f"{API}/products/WP-100/stock", headers=auth_headers)).json()
        assert stock["physical_stock"] == 13
        assert stock["available_stock"] == 13

        logs = (await client.get(f"{API}/products/WP-100/logs", headers=auth_headers)).json()
        assert len(logs) == 2
        assert {log["adjustment_type"] for log in logs} == {"inward", "deduction"}

    async def test_over_cap_inward_is_rejected(self, client, auth_headers, http_grid):
        await client.post(f"{API}/products", headers=auth_headers, json={"sku": "WP-100", "name": "WP"})
        location = await _first_shelf(client, auth_headers, http_grid["warehouse_id"])

        response = await client.post(f"{API}/inventory/inward", headers=auth_headers,
                                     json={"sku": "WP-100", "qty": 501, **location})
        assert response.status_code == 400

        placements = (await client.get(f"{API}/placements", headers=auth_headers)).json()
        assert placements == []

    async def test_auto_inward_counts_as_auto_addition(self, client, auth_headers, http_grid):
        await client.post(f"{API}/products", headers=auth_headers, json={"sku": "FLT-01", "name": "Filter"})
        location = await _first_shelf(client, auth_headers, http_grid["warehouse_id"])

        response = await client.post(f"{API}/inventory/auto-inward", headers=auth_headers,
                                     json={"sku": "FLT-01", "qty": 3, "source_reference": "RET-7", **location})
        assert response.status_code == 200
        assert response.json()["new_physical_stock"] == 3

        stock = (await client.get(f"{API}/products/FLT-01/stock", headers=auth_headers)).json()
        assert (stock["auto_addition"], stock["inward_addition"]) == (3, 0)

        logs = (await client.get(f"{API}/products/FLT-01/logs", headers=auth_headers)).json()
        assert [log["adjustment_type"] for log in logs] == ["auto_addition"]


class TestRackOrderingOverHttp:
    async def test_reposition_and_stale_conflict(self, client, auth_headers, http_grid):
        location = await _first_shelf(client, auth_headers, http_grid["warehouse_id"])
        rack_id = location["rack_id"]

        response = await client.post(f"{API}/racks/{rack_id}/reposition", headers=auth_headers,
                                     json={"new_position": 2, "old_position": 1})
        assert response.status_code == 204

        racks = (await client.get(f"{API}/zones/{location['zone_id']}/racks", headers=auth_headers)).json()
        assert [(r["name"], r["position"]) for r in racks["items"]] == [("Rack-2", 1), ("Rack-1", 2)]

        response = await client.post(f"{API}/racks/{rack_id}/reposition", headers=auth_headers,
                                     json={"new_position": 1, "old_position": 1})
        assert response.status_code == 409


class TestReceivingOverHttp:
    async def test_po_grn_inward(self, client, auth_headers, http_grid):
        await client.post(f"{API}/products", headers=auth_headers, json={"sku": "X-1", "name": "Pump"})
        party = (await client.post(f"{API}/parties", headers=auth_headers, json={
            "name": "Aqua Components Pvt Ltd", "gstin": "27AAPFU0939F1ZV",
        })).json()

        response = await client.post(f"{API}/purchase-orders", headers=auth_headers, json={
            "supplier_party_id": party["id"],
            "warehouse_id": http_grid["warehouse_id"],
            "items": [{"sku": "X-1", "ordered_qty": 20, "unit_cost": "99.50"}],
        })
        assert response.status_code == 201
        po = response.json()
        assert po["po_number"] == "PO-00001"

        response = await client.patch(f"{API}/purchase-orders/{po['id']}", headers=auth_headers,
                                      json={"status": "closed"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid Transition"
        assert response.json()["details"]["allowed"] == ["confirmed", "cancelled"]

        await client.patch(f"{API}/purchase-orders/{po['id']}", headers=auth_headers, json={"status": "confirmed"})

        response = await client.post(f"{API}/grns", headers=auth_headers, json={
            "purchase_order_id": po["id"],
            "items": [{"sku": "X-1", "expected_qty": 20, "received_qty": 10}],
        })
        assert response.status_code == 201
        grn = response.json()

        location = await _first_shelf(client, auth_headers, http_grid["warehouse_id"])
        response = await client.post(f"{API}/grns/{grn['id']}/inward", headers=auth_headers,
                                     json={"location": location})
        assert response.status_code == 200
        result = response.json()
        assert result["location"] == "Main Warehouse > Zone-1 > Rack-1 > Shelf-1"
        assert result["items"][0]["quantity_inwarded"] == 10

        po = (await client.get(f"{API}/purchase-orders/{po['id']}", headers=auth_headers)).json()
        assert po["status"] == "partially_received"
        assert po["items"][0]["received_qty"] == 10

        response = await client.post(f"{API}/grns/{grn['id']}/cancel", headers=auth_headers)
        assert response.status_code == 400

        response = await client.delete(f"{API}/parties/{party['id']}", headers=auth_headers)
        assert response.status_code == 409
        assert response.json()["details"]["open_po_numbers"] == ["PO-00001"]
