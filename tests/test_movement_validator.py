import datetime
import pytest
from app.schemas.errors import InsufficientStockError, ValidationError
from app.schemas.inventory import BatchStatus, Movement
from app.services.movement_validator import apply_movement, parse_movement, validate


def movimiento(tipo, cantidad, **kwargs):
    data = {"type": tipo, "quantity": cantidad, "unit": "kg", "reason": "Prueba"}
    data.update(kwargs)
    return Movement(**data)


def campos(result):
    return [error.field for error in result.errors]


@pytest.mark.parametrize("cantidad", [0.5, 1, 10, 250])
def test_entrada_suma_al_disponible(record, today, cantidad):
    result = validate(record, movimiento("ENTRADA", cantidad), today=today)

    assert result.accepted
    assert result.new_available_quantity == record.available_quantity + cantidad
    assert result.new_batch is None


@pytest.mark.parametrize("tipo", ["SALIDA", "MERMA"])
@pytest.mark.parametrize("cantidad, aceptado", [(1, True), (10, True), (10.5, False), (15, False)])
def test_salida_y_merma_aceptadas_solo_si_hay_stock(record, today, tipo, cantidad, aceptado):
    result, nuevo = apply_movement(record, movimiento(tipo, cantidad), today=today)

    assert result.accepted is aceptado
    if aceptado:
        assert nuevo.available_quantity == 10 - cantidad
    else:
        assert nuevo is record
        assert nuevo.available_quantity == 10


def test_salida_insuficiente_informa_del_deficit(record, today):
    result = validate(record, movimiento("SALIDA", 15), today=today)

    assert not result.accepted
    assert result.new_available_quantity is None
    [error] = result.errors
    assert isinstance(error, InsufficientStockError)
    assert error.field == "quantity"
    assert (error.current, error.requested, error.deficit) == (10, 15, -5)
    # El mensaje indica disponible, unidad y resultado negativo
    assert "10 kg" in error.message
    assert "-5 kg" in error.message


def test_ajuste_fija_el_valor_absoluto(record, today):
    result = validate(record, movimiento("AJUSTE", 7), today=today)

    assert result.accepted
    assert result.new_available_quantity == 7


def test_ajuste_es_idempotente(record, today):
    ajuste = movimiento("AJUSTE", 4)
    _, una_vez = apply_movement(record, ajuste, today=today)
    _, dos_veces = apply_movement(una_vez, ajuste, today=today)

    assert una_vez.available_quantity == dos_veces.available_quantity == 4


@pytest.mark.parametrize("notas", [None, "", "   "])
@pytest.mark.parametrize("cantidad", [1, 10, 50])
def test_transferencia_sin_destino_siempre_rechazada(record, today, notas, cantidad):
    result = validate(record, movimiento("TRANSFERENCIA", cantidad, notes=notas), today=today)

    assert not result.accepted
    assert "notes" in campos(result)


def test_transferencia_con_destino(record, today):
    result = validate(
        record, movimiento("TRANSFERENCIA", 4, notes="  Cocina  "), today=today
    )

    assert result.accepted
    assert result.new_available_quantity == 6


def test_transferencia_al_mismo_almacen_rechazada(record, today):
    result = validate(
        record, movimiento("TRANSFERENCIA", 4, notes="almacén central"), today=today
    )

    assert campos(result) == ["notes"]


def test_acumula_todos_los_errores(record, today):
    result = validate(
        record,
        Movement(type="DEVOLUCION", quantity=0, unit="kg", reason="  "),
        today=today,
    )

    assert not result.accepted
    assert campos(result) == ["movementType", "quantity", "reason"]


def test_transferencia_acumula_stock_y_notas(record, today):
    result = validate(record, movimiento("TRANSFERENCIA", 20), today=today)

    assert campos(result) == ["quantity", "notes"]
    assert isinstance(result.errors[0], InsufficientStockError)


@pytest.mark.parametrize("tipo", ["salida", " SALIDA", "Entrada"])
def test_tipo_debe_coincidir_exactamente(record, today, tipo):
    result = validate(record, movimiento(tipo, 3), today=today)

    assert not result.accepted
    assert campos(result) == ["movementType"]


def test_unidad_distinta_rechazada(record, today):
    result = validate(record, movimiento("ENTRADA", 3, unit="g"), today=today)

    assert not result.accepted
    assert campos(result) == ["unit"]


def test_costo_unitario_no_positivo(record, today):
    result = validate(record, movimiento("ENTRADA", 3, cost_per_unit=0), today=today)

    assert campos(result) == ["costPerUnit"]


def test_entrada_con_lote_crea_lote_activo(record, today):
    caducidad = today + datetime.timedelta(days=60)
    result = validate(
        record,
        movimiento("ENTRADA", 8, batch_id="L-2026-01", expiry_date=caducidad, cost_per_unit=12.5),
        today=today,
    )

    assert result.accepted
    lote = result.new_batch
    assert lote.batch_number == "L-2026-01"
    assert lote.quantity == 8
    assert lote.unit == "kg"
    assert lote.status == BatchStatus.ACTIVE
    assert lote.expiration_date == caducidad
    assert lote.location == "Almacén Central"
    assert lote.cost_per_unit == 12.5


def test_entrada_solo_con_caducidad_genera_numero_de_lote(record, today):
    result = validate(
        record,
        movimiento("ENTRADA", 2, expiry_date=today + datetime.timedelta(days=3)),
        today=today,
    )

    assert result.new_batch.batch_number == "LOTE-20261019-001"


def test_lote_duplicado_rechazado(record, today, make_batch):
    con_lote = record.model_copy(update={"batches": [make_batch("L-001")]})
    result = validate(con_lote, movimiento("ENTRADA", 2, batch_id="L-001"), today=today)

    assert campos(result) == ["batchId"]


def test_salida_no_crea_lote(record, today):
    result = validate(record, movimiento("SALIDA", 2, batch_id="L-009"), today=today)

    assert result.accepted
    assert result.new_batch is None


def test_apply_movement_no_modifica_el_original(record, today):
    result, nuevo = apply_movement(
        record, movimiento("ENTRADA", 5, batch_id="L-777"), today=today
    )

    assert result.accepted
    assert record.available_quantity == 10
    assert record.batches == []
    assert record.version == 0
    assert nuevo.available_quantity == 15
    assert [b.batch_number for b in nuevo.batches] == ["L-777"]
    assert nuevo.version == 1
    # Reservado y cuarentena son de solo lectura
    assert nuevo.reserved_quantity == 2
    assert nuevo.quarantine_quantity == 1


def test_parse_movement_acepta_camel_case():
    movement = parse_movement(
        {
            "movementType": "ENTRADA",
            "quantity": "4",
            "unit": "kg",
            "reason": "Compra a proveedor",
            "batchId": "L-1",
            "costPerUnit": 3,
            "expiryDate": "2026-12-01",
        }
    )

    assert isinstance(movement, Movement)
    assert movement.type == "ENTRADA"
    assert movement.batch_id == "L-1"
    assert movement.expiry_date == datetime.date(2026, 12, 1)


def test_parse_movement_convierte_valores_mal_formados_en_errores():
    errors = parse_movement(
        {"type": "ENTRADA", "quantity": "mucho", "unit": "kg", "reason": "x", "expiry_date": "31/02/2026"}
    )

    assert isinstance(errors, list)
    assert all(isinstance(error, ValidationError) for error in errors)
    assert sorted(error.field for error in errors) == ["expiryDate", "quantity"]


def test_lotes_de_otros_almacenes_cuentan(record, today):
    caducidad = today + datetime.timedelta(days=10)
    usados = ["L-001", "LOTE-20261019-001"]

    repetido = validate(
        record, movimiento("ENTRADA", 2, batch_id="L-001"), today=today, taken_batch_numbers=usados
    )
    generado = validate(
        record, movimiento("ENTRADA", 2, expiry_date=caducidad), today=today, taken_batch_numbers=usados
    )

    assert campos(repetido) == ["batchId"]
    assert generado.new_batch.batch_number == "LOTE-20261019-003"
