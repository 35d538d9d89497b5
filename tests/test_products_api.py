"""
Tests for the product catalog endpoints.
"""

import pytest

from app.shared.database.models import Product, SaleItem, StockMovement


@pytest.fixture
def stocked_catalog(catalog, make_product):
    """Five products across two brands with varied stock."""
    return {
        "pan_a10": make_product("PAN-A10", "Pantalla Galaxy A10", stock=3, precio="15000",
                                marca_id=catalog["samsung"], tipo_id=catalog["pantalla"]),
        "bat_a10": make_product("BAT-A10", "Batería Galaxy A10", stock=25, precio="8000",
                                marca_id=catalog["samsung"], tipo_id=catalog["bateria"]),
        "pan_ip11": make_product("PAN-IP11", "Pantalla iPhone 11", stock=0, precio="30000",
                                 marca_id=catalog["apple"], tipo_id=catalog["pantalla"]),
        "bat_ip11": make_product("BAT-IP11", "Batería iPhone 11", stock=12, precio="12000",
                                 marca_id=catalog["apple"], tipo_id=catalog["bateria"]),
        "pan": make_product("PAN", "Pegamento B7000", stock=40, precio="2000"),
    }


class TestListProducts:
    """Test the filtered product listing."""

    def test_default_listing_with_statistics(self, client, auth_headers, stocked_catalog):
        body = client.get("/productos", headers=auth_headers).json()

        assert len(body["productos"]) == 5
        assert body["productos"][0]["nombre"] == "Batería Galaxy A10"
        assert body["paginacion"] == {"pagina": 1, "limite": 10, "total": 5, "totalPaginas": 1}
        stats = body["estadisticas"]
        assert stats["total_productos"] == 5
        assert stats["stock_total"] == 80
        assert stats["total_marcas"] == 2
        assert stats["productos_stock_bajo"] == 2

    def test_low_stock_filter_is_inclusive(self, client, auth_headers, stocked_catalog):
        body = client.get("/productos", params={"stock_minimo": 3}, headers=auth_headers).json()

        assert {p["sku"] for p in body["productos"]} == {"PAN-A10", "PAN-IP11"}
        assert body["estadisticas"]["total_productos"] == 2

    def test_filter_by_brand_and_type(self, client, auth_headers, catalog, stocked_catalog):
        body = client.get(
            "/productos",
            params={"marca_id": catalog["apple"], "tipo_id": catalog["pantalla"]},
            headers=auth_headers
        ).json()

        assert [p["sku"] for p in body["productos"]] == ["PAN-IP11"]
        assert body["productos"][0]["marca"] == "Apple"

    def test_search_ranks_exact_sku_first(self, client, auth_headers, stocked_catalog):
        body = client.get("/productos", params={"busqueda": "pan"}, headers=auth_headers).json()

        assert body["productos"][0]["sku"] == "PAN"

    def test_explicit_sort_overrides_ranking(self, client, auth_headers, stocked_catalog):
        body = client.get(
            "/productos",
            params={"busqueda": "pan", "ordenar_por": "stock", "orden": "desc"},
            headers=auth_headers
        ).json()

        assert [p["stock"] for p in body["productos"]] == sorted(
            (p["stock"] for p in body["productos"]), reverse=True
        )

    def test_por_pagina_alias(self, client, auth_headers, stocked_catalog):
        body = client.get(
            "/productos",
            params={"pagina": 2, "por_pagina": 2},
            headers=auth_headers
        ).json()

        assert len(body["productos"]) == 2
        assert body["paginacion"]["totalPaginas"] == 3

    def test_unknown_sort_field_issues_no_query(self, client, auth_headers, statement_log):
        response = client.get(
            "/productos",
            params={"ordenar_por": "precio DESC; DELETE FROM productos"},
            headers=auth_headers
        )

        assert response.status_code == 400
        assert statement_log == []


class TestSearchProducts:
    def test_ranked_search(self, client, auth_headers, stocked_catalog):
        body = client.get("/productos/buscar/PAN-A10", headers=auth_headers).json()

        assert body["busqueda"] == "PAN-A10"
        assert body["coincidencia_exacta"] is True
        assert body["productos"][0]["sku"] == "PAN-A10"

    def test_no_results(self, client, auth_headers, stocked_catalog):
        body = client.get("/productos/buscar/zzz", headers=auth_headers).json()

        assert body["total"] == 0
        assert body["coincidencia_exacta"] is False


class TestProductWrites:
    """Test create, update, stock and delete."""

    def test_create_with_generated_sku(self, client, auth_headers, catalog):
        response = client.post(
            "/productos",
            json={"nombre": "Pantalla Galaxy A20", "precio": 18000, "stock": 4,
                  "marca_id": catalog["samsung"], "tipo_id": catalog["pantalla"]},
            headers=auth_headers
        )

        assert response.status_code == 201
        producto = response.json()["producto"]
        assert producto["sku"].startswith("SAM-PAN-PANTALLA-")
        assert producto["marca"] == "Samsung"

    def test_duplicate_sku_conflicts(self, client, auth_headers, stocked_catalog):
        response = client.post(
            "/productos",
            json={"sku": "pan-a10", "nombre": "Otra pantalla"},
            headers=auth_headers
        )

        assert response.status_code == 409

    def test_unknown_brand_is_rejected(self, client, auth_headers, count_rows):
        response = client.post(
            "/productos",
            json={"sku": "X-1", "nombre": "Sin marca", "marca_id": 999},
            headers=auth_headers
        )

        assert response.status_code == 400
        assert count_rows(Product) == 0

    def test_update_keeps_omitted_fields(self, client, auth_headers, stocked_catalog):
        product_id = stocked_catalog["pan_a10"]

        body = client.put(
            f"/productos/{product_id}",
            json={"precio": 16000, "nombre": "  "},
            headers=auth_headers
        ).json()

        assert body["producto"]["precio"] == 16000.0
        assert body["producto"]["nombre"] == "Pantalla Galaxy A10"
        assert body["producto"]["stock"] == 3

    def test_update_stock_records_movement(self, client, auth_headers, stocked_catalog, db_session):
        product_id = stocked_catalog["pan_a10"]

        body = client.put(f"/productos/{product_id}", json={"stock": 150}, headers=auth_headers).json()

        assert body["producto"]["stock"] == 150
        movement = db_session.query(StockMovement).filter_by(producto_id=product_id).one()
        assert movement.operacion == "set"
        assert (movement.stock_anterior, movement.stock_nuevo) == (3, 150)
        assert movement.usuario_id == 1

    def test_update_without_stock_change_records_nothing(self, client, auth_headers, stocked_catalog, count_rows):
        product_id = stocked_catalog["pan_a10"]

        client.put(f"/productos/{product_id}", json={"stock": 3, "precio": 15500}, headers=auth_headers)

        assert count_rows(StockMovement) == 0

    @pytest.mark.parametrize("payload", [
        {"precio": 100000000},
        {"stock": 2**31},
    ])
    def test_update_out_of_range_is_rejected(self, client, auth_headers, stocked_catalog, payload):
        response = client.put(f"/productos/{stocked_catalog['pan_a10']}", json=payload, headers=auth_headers)

        assert response.status_code == 400

    def test_update_missing_product(self, client, auth_headers):
        assert client.put("/productos/999", json={"precio": 1}, headers=auth_headers).status_code == 404

    def test_stock_subtract_records_movement(self, client, auth_headers, stocked_catalog, count_rows):
        product_id = stocked_catalog["bat_a10"]

        body = client.patch(
            f"/productos/{product_id}/stock",
            json={"operacion": "subtract", "cantidad": 5, "motivo": "Merma"},
            headers=auth_headers
        ).json()

        assert body["operacion_realizada"]["stock_anterior"] == 25
        assert body["operacion_realizada"]["stock_nuevo"] == 20
        assert body["operacion_realizada"]["diferencia"] == -5
        assert body["producto"]["stock"] == 20
        assert count_rows(StockMovement, StockMovement.producto_id == product_id) == 1

    def test_stock_cannot_go_negative(self, client, auth_headers, stocked_catalog, count_rows):
        product_id = stocked_catalog["pan_a10"]

        response = client.patch(
            f"/productos/{product_id}/stock",
            json={"operacion": "subtract", "cantidad": 10},
            headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["stock_actual"] == 3
        assert count_rows(StockMovement) == 0

    def test_stock_add_beyond_range(self, client, auth_headers, stocked_catalog, count_rows):
        response = client.patch(
            f"/productos/{stocked_catalog['bat_a10']}/stock",
            json={"operacion": "add", "cantidad": 2**31 - 1},
            headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["stock_actual"] == 25
        assert count_rows(StockMovement) == 0

    def test_stock_set(self, client, auth_headers, stocked_catalog):
        body = client.patch(
            f"/productos/{stocked_catalog['pan_ip11']}/stock",
            json={"operacion": "set", "cantidad": 7},
            headers=auth_headers
        ).json()

        assert body["producto"]["stock"] == 7

    def test_delete_requires_admin(self, client, auth_headers, stocked_catalog):
        response = client.delete(f"/productos/{stocked_catalog['pan']}", headers=auth_headers)

        assert response.status_code == 403

    def test_delete_product(self, client, admin_headers, stocked_catalog, count_rows):
        response = client.delete(f"/productos/{stocked_catalog['pan']}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["producto_eliminado"]["sku"] == "PAN"
        assert count_rows(Product) == 4

    def test_delete_product_with_sales_conflicts(self, client, auth_headers, admin_headers, stocked_catalog, count_rows):
        client.post("/ventas", json={
            "items": [{"sku": "PAN-A10", "descripcion": "Pantalla", "cantidad": 1, "precio_unitario": 15000}]
        }, headers=auth_headers)

        response = client.delete(f"/productos/{stocked_catalog['pan_a10']}", headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["ventas_asociadas"] == 1
        assert count_rows(SaleItem) == 1
        assert count_rows(Product) == 5
