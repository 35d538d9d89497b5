"""
Tests for the sales endpoints.

Covers atomic sale registration, the history listing with its aggregates
and the period summary report.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app.shared.database.models import Sale, SaleItem


def sale_payload(**overrides):
    payload = {
        "vendedor": "Ana",
        "forma_pago": "efectivo",
        "items": [
            {"sku": "pan-001", "descripcion": "Pantalla Galaxy A10", "cantidad": 1, "precio_unitario": 15000},
            {"sku": "BAT-001", "descripcion": "Batería Galaxy A10", "cantidad": 2, "precio_unitario": "8000.50"},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def seeded_sales(db_session):
    """Three sales from two sellers on different days."""
    now = datetime.now()
    rows = [
        Sale(numero_boleta=1, fecha=now - timedelta(days=40), vendedor="Ana", forma_pago="efectivo",
             total=Decimal("1000"), monto_recibido=Decimal("1000"), vuelto=Decimal("0")),
        Sale(numero_boleta=2, fecha=now - timedelta(days=1), vendedor="Bruno", forma_pago="debito",
             total=Decimal("3000"), monto_recibido=Decimal("3000"), vuelto=Decimal("0")),
        Sale(numero_boleta=3, fecha=now, vendedor="Ana", forma_pago="efectivo",
             total=Decimal("2000"), monto_recibido=Decimal("5000"), vuelto=Decimal("3000")),
    ]
    db_session.add_all(rows)
    db_session.flush()
    db_session.add_all([
        SaleItem(venta_id=rows[0].id, sku="PAN-001", descripcion="Pantalla", cantidad=1,
                 precio_unitario=Decimal("1000"), subtotal=Decimal("1000")),
        SaleItem(venta_id=rows[1].id, sku="BAT-001", descripcion="Batería", cantidad=3,
                 precio_unitario=Decimal("1000"), subtotal=Decimal("3000")),
        SaleItem(venta_id=rows[2].id, sku="BAT-001", descripcion="Batería", cantidad=2,
                 precio_unitario=Decimal("1000"), subtotal=Decimal("2000")),
    ])
    db_session.commit()
    return rows


class TestCreateSale:
    """Test atomic sale registration."""

    def test_creates_header_and_items(self, client, auth_headers, count_rows):
        response = client.post("/ventas", json=sale_payload(monto_recibido=40000), headers=auth_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Venta registrada exitosamente"
        assert body["numero_boleta"] == 1
        assert body["total"] == 31001.0
        assert body["vuelto"] == 8999.0
        assert count_rows(Sale) == 1
        assert count_rows(SaleItem, SaleItem.venta_id == body["ventaId"]) == 2

    def test_items_keep_input_order_and_subtotals(self, client, auth_headers):
        created = client.post("/ventas", json=sale_payload(), headers=auth_headers).json()

        sale = client.get(f"/ventas/{created['ventaId']}", headers=auth_headers).json()

        assert [i["sku"] for i in sale["items"]] == ["PAN-001", "BAT-001"]
        assert [i["subtotal"] for i in sale["items"]] == [15000.0, 16001.0]
        assert sale["total"] == 31001.0
        assert sale["monto_recibido"] == 31001.0
        assert sale["vuelto"] == 0.0

    def test_empty_items_rejected_without_persisting(self, client, auth_headers, count_rows):
        response = client.post("/ventas", json=sale_payload(items=[]), headers=auth_headers)

        assert response.status_code == 400
        assert "error" in response.json()
        assert count_rows(Sale) == 0

    @pytest.mark.parametrize("bad_value", ["abc", "", None, "NaN", "Infinity"])
    def test_non_numeric_price_rolls_back_everything(self, client, auth_headers, count_rows, bad_value):
        payload = sale_payload()
        payload["items"][1]["precio_unitario"] = bad_value

        response = client.post("/ventas", json=payload, headers=auth_headers)

        assert response.status_code == 400
        assert "precio_unitario" in response.json()["error"]
        assert count_rows(Sale) == 0
        assert count_rows(SaleItem) == 0

    @pytest.mark.parametrize("bad_quantity", [0, -1, 1.5, "dos"])
    def test_invalid_quantity_rolls_back_everything(self, client, auth_headers, count_rows, bad_quantity):
        payload = sale_payload()
        payload["items"][0]["cantidad"] = bad_quantity

        response = client.post("/ventas", json=payload, headers=auth_headers)

        assert response.status_code == 400
        assert count_rows(Sale) == 0

    @pytest.mark.parametrize("field,value", [
        ("cantidad", "1e30"),
        ("cantidad", 2**31),
        ("precio_unitario", "1e11"),
        ("precio_unitario", 100000000),
    ])
    def test_out_of_range_values_are_rejected(self, client, auth_headers, count_rows, field, value):
        payload = sale_payload()
        payload["items"][0][field] = value

        response = client.post("/ventas", json=payload, headers=auth_headers)

        assert response.status_code == 400
        assert f"items[1].{field}" in response.json()["error"]
        assert count_rows(Sale) == 0
        assert count_rows(SaleItem) == 0

    def test_subtotal_beyond_column_range(self, client, auth_headers, count_rows):
        payload = sale_payload()
        payload["items"][0].update(cantidad=2**31 - 1, precio_unitario="99999999.99")

        response = client.post("/ventas", json=payload, headers=auth_headers)

        assert response.status_code == 400
        assert "items[1].subtotal" in response.json()["error"]
        assert count_rows(Sale) == 0

    def test_received_amount_below_total(self, client, auth_headers, count_rows):
        response = client.post("/ventas", json=sale_payload(monto_recibido=100), headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["total"] == 31001.0
        assert count_rows(Sale) == 0

    def test_receipt_numbers_are_sequential(self, client, auth_headers):
        first = client.post("/ventas", json=sale_payload(), headers=auth_headers).json()
        second = client.post("/ventas", json=sale_payload(), headers=auth_headers).json()

        assert second["numero_boleta"] == first["numero_boleta"] + 1

    def test_duplicate_receipt_number_conflicts(self, client, auth_headers, count_rows):
        client.post("/ventas", json=sale_payload(numero_boleta=50), headers=auth_headers)

        response = client.post("/ventas", json=sale_payload(numero_boleta=50), headers=auth_headers)

        assert response.status_code == 409
        assert count_rows(Sale) == 1

    def test_seller_defaults_to_authenticated_user(self, client, auth_headers):
        created = client.post("/ventas", json=sale_payload(vendedor=None), headers=auth_headers).json()

        sale = client.get(f"/ventas/{created['ventaId']}", headers=auth_headers).json()

        assert sale["vendedor"] == "vendedor@taller.cl"

    def test_requires_authentication(self, client, count_rows):
        response = client.post("/ventas", json=sale_payload())

        assert response.status_code == 401
        assert response.json() == {"error": "No autenticado"}
        assert count_rows(Sale) == 0


class TestSalesHistory:
    """Test the filtered, paginated history."""

    def test_default_listing(self, client, auth_headers, seeded_sales):
        body = client.get("/ventas/historial", headers=auth_headers).json()

        assert [v["numero_boleta"] for v in body["ventas"]] == [3, 2, 1]
        assert body["paginacion"] == {"pagina": 1, "limite": 10, "total": 3, "totalPaginas": 1}
        assert body["estadisticas"]["total_ventas"] == 3
        assert body["estadisticas"]["total_ingresos"] == 6000.0
        assert body["estadisticas"]["total_vendedores"] == 2

    def test_filter_by_seller_and_payment(self, client, auth_headers, seeded_sales):
        body = client.get(
            "/ventas/historial",
            params={"vendedor": "an", "forma_pago": "efectivo"},
            headers=auth_headers
        ).json()

        assert {v["numero_boleta"] for v in body["ventas"]} == {1, 3}
        assert body["top_vendedores"] == [
            {"vendedor": "Ana", "total_ventas": 2, "total_ventas_monto": 3000.0}
        ]
        assert body["formas_pago"] == [{"forma_pago": "efectivo", "cantidad": 2, "total": 3000.0}]

    def test_date_range_includes_end_day(self, client, auth_headers, seeded_sales):
        today = datetime.now().date()

        body = client.get(
            "/ventas/historial",
            params={"fecha_inicio": str(today - timedelta(days=2)), "fecha_fin": str(today)},
            headers=auth_headers
        ).json()

        assert {v["numero_boleta"] for v in body["ventas"]} == {2, 3}

    def test_sort_by_total_ascending(self, client, auth_headers, seeded_sales):
        body = client.get(
            "/ventas/historial",
            params={"ordenar_por": "total", "orden": "asc"},
            headers=auth_headers
        ).json()

        assert [v["total"] for v in body["ventas"]] == [1000.0, 2000.0, 3000.0]

    def test_pagination(self, client, auth_headers, seeded_sales):
        body = client.get(
            "/ventas/historial",
            params={"pagina": 2, "limite": 2},
            headers=auth_headers
        ).json()

        assert len(body["ventas"]) == 1
        assert body["paginacion"]["totalPaginas"] == 2
        assert body["estadisticas"]["total_ventas"] == 3

    def test_unknown_sort_field_issues_no_query(self, client, auth_headers, seeded_sales, statement_log):
        response = client.get(
            "/ventas/historial",
            params={"ordenar_por": "id; DROP TABLE ventas"},
            headers=auth_headers
        )

        assert response.status_code == 400
        assert "permitidos" in response.json()
        assert statement_log == []

    def test_invalid_direction_issues_no_query(self, client, auth_headers, statement_log):
        response = client.get("/ventas/historial", params={"orden": "sideways"}, headers=auth_headers)

        assert response.status_code == 400
        assert statement_log == []

    def test_inverted_date_range(self, client, auth_headers):
        response = client.get(
            "/ventas/historial",
            params={"fecha_inicio": "2024-05-10", "fecha_fin": "2024-05-01"},
            headers=auth_headers
        )

        assert response.status_code == 400


class TestSummaryReport:
    """Test the period summary report."""

    @pytest.mark.parametrize("periodo", ["dia", "semana", "mes", "anio"])
    def test_valid_periods(self, client, auth_headers, seeded_sales, periodo):
        response = client.get(f"/ventas/reporte-resumen/{periodo}", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["periodo"] == periodo
        assert "ventas_por_dia" in body
        assert "productos_mas_vendidos" in body

    def test_today_only(self, client, auth_headers, seeded_sales):
        body = client.get("/ventas/reporte-resumen/dia", headers=auth_headers).json()

        assert body["estadisticas"]["total_ventas"] == 1
        assert body["productos_mas_vendidos"][0]["sku"] == "BAT-001"

    def test_invalid_period(self, client, auth_headers):
        response = client.get("/ventas/reporte-resumen/quincena", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["permitidos"] == ["dia", "semana", "mes", "anio"]


class TestGetSale:
    def test_not_found(self, client, auth_headers):
        response = client.get("/ventas/999", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "Venta no encontrada"}
