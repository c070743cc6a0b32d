import pytest


@pytest.fixture
def url(producto, almacen):
    return f"/stock/{producto.codigo}/{almacen.codigo}"


def registrar(client, url, **body):
    data = {"unit": "kg", "reason": "Prueba"}
    data.update(body)
    return client.post(f"{url}/movimientos?fecha_referencia=2026-10-19", json=data)


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200


def test_crear_producto_y_almacen(client):
    producto = client.post(
        "/productos/",
        json={"sku": "AZUCAR1", "nombre_corto": "Azúcar", "unidad": "kg", "precio_base": 30},
    )
    almacen = client.post("/almacenes/", json={"descripcion": "Bodega Norte"})

    assert producto.status_code == 201
    assert producto.json()["activo"] is True
    assert almacen.status_code == 201

    repetido = client.post(
        "/productos/",
        json={"sku": "AZUCAR1", "nombre_corto": "Azúcar", "unidad": "kg"},
    )
    assert repetido.status_code == 400
    assert client.get("/productos/").json()["total"] == 1
    assert client.get("/almacenes/").json()["total"] == 1


def test_snapshot_inicial(client, url):
    response = client.get(url)

    assert response.status_code == 200
    record = response.json()["record"]
    assert record["availableQuantity"] == 0
    assert record["unit"] == "kg"
    assert record["location"] == "Almacén Central"


def test_snapshot_de_almacen_inexistente(client, producto):
    response = client.get(f"/stock/{producto.codigo}/999")

    assert response.status_code == 404
    assert response.json()["detail"] == "Almacén no encontrado"


def test_entrada_y_salida(client, url):
    entrada = registrar(client, url, movementType="ENTRADA", quantity=10, batchId="L-1", expiryDate="2026-10-24")

    assert entrada.status_code == 201
    body = entrada.json()
    assert body["result"]["accepted"] is True
    assert body["result"]["newAvailableQuantity"] == 10
    assert body["result"]["newBatch"]["batchNumber"] == "L-1"
    assert body["record"]["version"] == 1

    salida = registrar(client, url, type="SALIDA", quantity=4)

    assert salida.status_code == 201
    assert salida.json()["record"]["availableQuantity"] == 6
    assert client.get(url).json()["record"]["availableQuantity"] == 6


def test_salida_insuficiente_devuelve_422_y_no_cambia_el_stock(client, url):
    registrar(client, url, type="ENTRADA", quantity=10)

    response = registrar(client, url, type="SALIDA", quantity=15)

    assert response.status_code == 422
    [error] = response.json()["detail"]["errors"]
    assert error["kind"] == "insufficient_stock"
    assert error["field"] == "quantity"
    assert (error["current"], error["requested"], error["deficit"]) == (10, 15, -5)
    assert client.get(url).json()["record"]["availableQuantity"] == 10


def test_errores_acumulados(client, url):
    response = registrar(client, url, type="TRANSFERENCIA", quantity=-1, reason="")

    assert response.status_code == 422
    campos = [e["field"] for e in response.json()["detail"]["errors"]]
    assert campos == ["quantity", "reason", "notes"]


def test_payload_mal_formado(client, url):
    response = registrar(client, url, type="ENTRADA", quantity=3, expiryDate="no-es-fecha")

    assert response.status_code == 422
    assert [e["field"] for e in response.json()["detail"]["errors"]] == ["expiryDate"]


def test_validar_sin_registrar(client, url):
    response = client.post(
        f"{url}/movimientos/validar",
        json={"type": "AJUSTE", "quantity": 7, "unit": "kg", "reason": "Conteo físico"},
    )

    assert response.status_code == 200
    assert response.json()["accepted"] is True
    assert response.json()["newAvailableQuantity"] == 7
    assert client.get(url).json()["record"]["availableQuantity"] == 0


def test_historial_de_movimientos(client, url, producto):
    registrar(client, url, type="ENTRADA", quantity=10)
    registrar(client, url, type="MERMA", quantity=2, reason="Producto vencido")
    registrar(client, url, type="SALIDA", quantity=50)

    response = client.get(f"/stock/movimientos?codigo_producto={producto.codigo}")

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [m["tipo"] for m in body["data"]] == ["MERMA", "ENTRADA"]
    assert client.get("/stock/movimientos?tipo=merma").json()["total"] == 1


def test_lotes_con_filtro_de_severidad(client, url):
    registrar(client, url, type="ENTRADA", quantity=1, batchId="L-VENCE", expiryDate="2026-10-21")
    registrar(client, url, type="ENTRADA", quantity=1, batchId="L-BIEN", expiryDate="2027-01-01")
    registrar(client, url, type="ENTRADA", quantity=1, batchId="L-PASADO", expiryDate="2026-10-01")

    todos = client.get(f"{url}/lotes?fecha_referencia=2026-10-19").json()
    criticos = client.get(f"{url}/lotes?severidad=critical&fecha_referencia=2026-10-19").json()

    assert {b["batchNumber"]: b["expirationSeverity"] for b in todos} == {
        "L-VENCE": "critical",
        "L-BIEN": "good",
        "L-PASADO": "expired",
    }
    assert [b["batchNumber"] for b in criticos] == ["L-VENCE"]
    pasado = next(b for b in todos if b["batchNumber"] == "L-PASADO")
    assert pasado["status"] == "expired"
    assert pasado["daysToExpiration"] == -18


def test_alertas(client, url):
    registrar(client, url, type="ENTRADA", quantity=4, batchId="L-1", expiryDate="2026-10-21")

    response = client.get(f"{url}/alertas?fecha_referencia=2026-10-19")

    assert response.status_code == 200
    assert [a["type"] for a in response.json()] == [
        "LOW_STOCK",
        "REORDER_POINT",
        "EXPIRY_WARNING",
    ]


def test_caducidad(client):
    response = client.get("/stock/caducidad?fecha_cad=2026-10-24&fecha_referencia=2026-10-19")

    assert response.json()["days"] == 5
    assert response.json()["severity"] == "critical"
    assert client.get("/stock/caducidad").json()["severity"] == "none"


def test_consultar_lotes_no_guarda_estados(client, url):
    registrar(client, url, type="ENTRADA", quantity=1, batchId="L-PASADO", expiryDate="2026-10-01")

    listado = client.get(f"{url}/lotes?fecha_referencia=2026-10-19").json()

    assert listado[0]["status"] == "expired"
    assert client.get(url).json()["record"]["batches"][0]["status"] == "active"

    response = client.post(f"{url}/lotes/actualizar-estados?fecha_referencia=2026-10-19")

    assert response.status_code == 200
    assert response.json()[0]["status"] == "expired"
    assert client.get(url).json()["record"]["batches"][0]["status"] == "expired"


def test_mismo_lote_en_otro_almacen_se_rechaza(client, url, producto):
    norte = client.post("/almacenes/", json={"descripcion": "Almacén Norte"}).json()
    url_norte = f"/stock/{producto.codigo}/{norte['codigo']}"
    registrar(client, url, type="ENTRADA", quantity=5, batchId="L-1")

    response = registrar(client, url_norte, type="ENTRADA", quantity=5, batchId="L-1")

    assert response.status_code == 422
    assert [e["field"] for e in response.json()["detail"]["errors"]] == ["batchId"]
