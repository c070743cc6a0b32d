import datetime
import logging
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel
from app.schemas.inventory import Severity, StockRecord
from app.services.batch_classifier import classify

logger = logging.getLogger(__name__)

# Por debajo de este número de días un aviso de caducidad sube a prioridad alta
HIGH_PRIORITY_EXPIRY_DAYS = 3


class AlertType(str, Enum):
    LOW_STOCK = "LOW_STOCK"
    EXPIRY_WARNING = "EXPIRY_WARNING"
    REORDER_POINT = "REORDER_POINT"
    EXPIRED_PRODUCT = "EXPIRED_PRODUCT"


class AlertPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class StockAlert(BaseModel):
    type: AlertType
    priority: AlertPriority
    product_id: Optional[int] = None
    location: str = ""
    batch_number: Optional[str] = None
    message: str
    threshold: Optional[float] = None
    current_value: Optional[float] = None
    days_to_expiration: Optional[int] = None


def check_alerts(
    record: StockRecord,
    today: datetime.date,
    minimum: Optional[float] = None,
    reorder_point: Optional[float] = None,
) -> List[StockAlert]:
    """Genera las alertas de stock bajo, punto de reorden y caducidad de un registro."""
    alerts = []
    available = record.available_quantity

    if minimum is not None and available <= minimum:
        alerts.append(
            StockAlert(
                type=AlertType.LOW_STOCK,
                priority=AlertPriority.CRITICAL if available == 0 else AlertPriority.HIGH,
                product_id=record.product_id,
                location=record.location,
                message=(
                    f"El stock actual ({available:g} {record.unit}) está por debajo "
                    f"del mínimo ({minimum:g})"
                ),
                threshold=minimum,
                current_value=available,
            )
        )

    if reorder_point is not None and available <= reorder_point:
        alerts.append(
            StockAlert(
                type=AlertType.REORDER_POINT,
                priority=AlertPriority.MEDIUM,
                product_id=record.product_id,
                location=record.location,
                message=f"Es momento de realizar un pedido. Stock actual: {available:g}",
                threshold=reorder_point,
                current_value=available,
            )
        )

    for batch in record.batches:
        if batch.quantity <= 0 or batch.expiration_date is None:
            continue
        status = classify(batch.expiration_date, today)
        if status.severity == Severity.EXPIRED:
            alerts.append(
                StockAlert(
                    type=AlertType.EXPIRED_PRODUCT,
                    priority=AlertPriority.CRITICAL,
                    product_id=record.product_id,
                    location=record.location,
                    batch_number=batch.batch_number,
                    message=(
                        f"El lote {batch.batch_number} caducó el "
                        f"{batch.expiration_date:%d/%m/%Y}"
                    ),
                    days_to_expiration=status.days,
                )
            )
        elif status.severity == Severity.CRITICAL:
            alerts.append(
                StockAlert(
                    type=AlertType.EXPIRY_WARNING,
                    priority=(
                        AlertPriority.HIGH
                        if status.days <= HIGH_PRIORITY_EXPIRY_DAYS
                        else AlertPriority.MEDIUM
                    ),
                    product_id=record.product_id,
                    location=record.location,
                    batch_number=batch.batch_number,
                    message=f"El lote {batch.batch_number} caduca en {status.days} días",
                    days_to_expiration=status.days,
                )
            )

    if alerts:
        logger.info(
            "%d alerta(s) para producto %s en %s",
            len(alerts),
            record.product_id,
            record.location or "sin ubicación",
        )
    return alerts
