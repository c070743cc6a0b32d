import datetime
import logging
import math
from typing import Iterable, List, Optional, Union
from dateutil import parser as date_parser
from app.schemas.inventory import Batch, BatchStatus, ExpirationStatus, Severity

logger = logging.getLogger(__name__)

# Umbrales en días (inclusivos)
CRITICAL_DAYS = 7
WARNING_DAYS = 30

DateLike = Union[datetime.date, datetime.datetime, str, None]


def _to_datetime(value: Union[datetime.date, datetime.datetime]) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        # Se comparan siempre como horas locales sin zona
        return value.replace(tzinfo=None)
    return datetime.datetime.combine(value, datetime.time.min)


def _coerce_date(value: DateLike) -> Optional[Union[datetime.date, datetime.datetime]]:
    """Convierte el valor recibido en fecha. Devuelve None si no se puede interpretar."""
    if value is None or isinstance(value, (datetime.date, datetime.datetime)):
        return value
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return date_parser.isoparse(value.strip())
        except (ValueError, OverflowError):
            logger.warning("Fecha de caducidad no válida: %r", value)
            return None
    logger.warning("Tipo de fecha de caducidad no soportado: %r", type(value).__name__)
    return None


def days_until(expiration_date: DateLike, today: DateLike) -> Optional[int]:
    """Días que faltan hasta la caducidad, redondeando hacia arriba.

    Con fechas sin hora la diferencia es exacta. Con fecha y hora, un día
    empezado cuenta entero (sigue siendo válido hoy).
    """
    expiration = _coerce_date(expiration_date)
    reference = _coerce_date(today)
    if expiration is None or reference is None:
        return None

    if not isinstance(expiration, datetime.datetime) and not isinstance(
        reference, datetime.datetime
    ):
        return (expiration - reference).days

    delta = _to_datetime(expiration) - _to_datetime(reference)
    return math.ceil(delta.total_seconds() / 86400)


def severity_for_days(days: Optional[int]) -> Severity:
    """Cubeta de severidad. Todo entero cae exactamente en una."""
    if days is None:
        return Severity.NONE
    if days < 0:
        return Severity.EXPIRED
    if days <= CRITICAL_DAYS:
        return Severity.CRITICAL
    if days <= WARNING_DAYS:
        return Severity.WARNING
    return Severity.GOOD


def classify(expiration_date: DateLike, today: DateLike) -> ExpirationStatus:
    days = days_until(expiration_date, today)
    return ExpirationStatus(days=days, severity=severity_for_days(days))


def reclassify(batch: Batch, today: DateLike) -> Batch:
    """Marca como `expired` un lote activo cuya fecha ya pasó.

    Los demás estados (cuarentena, reservado, consumido) los gestiona otro
    proceso y no se tocan. Nunca se elimina un lote.
    """
    if batch.status != BatchStatus.ACTIVE:
        return batch
    if classify(batch.expiration_date, today).severity != Severity.EXPIRED:
        return batch
    logger.info("Lote %s marcado como vencido", batch.batch_number)
    return batch.model_copy(update={"status": BatchStatus.EXPIRED})


def filter_batches(
    batches: Iterable[Batch],
    today: DateLike,
    severity: Optional[Union[Severity, str]] = None,
    status: Optional[Union[BatchStatus, str]] = None,
) -> List[Batch]:
    """Filtra lotes por cubeta de caducidad y/o por estado almacenado.

    Un filtro con un valor desconocido no coincide con ningún lote.
    """
    try:
        wanted_severity = Severity(severity) if severity else None
        wanted_status = BatchStatus(status) if status else None
    except ValueError:
        logger.warning(
            "Filtro de lotes desconocido: severidad=%r, estado=%r", severity, status
        )
        return []

    result = []
    for batch in batches:
        if wanted_status is not None and batch.status != wanted_status:
            continue
        if (
            wanted_severity is not None
            and classify(batch.expiration_date, today).severity != wanted_severity
        ):
            continue
        result.append(batch)
    return result
