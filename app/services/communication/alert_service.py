from typing import Optional

from loguru import logger

from app.core.config import settings
from app.enums.alert_type import AlertType
from app.enums.notification_type import NotificationType
from app.models.alert import OperationalAlert
from app.models.order import Order
from app.services.communication.notification_service import NotificationService
from app.services.kafka.producer import get_kafka_producer


class AlertService:
    """Operational alert channel for things that need a human."""

    @staticmethod
    async def raise_alert(
        alert_type: AlertType,
        message: str,
        processor: Optional[str] = None,
        resource_id: Optional[str] = None,
        order: Optional[Order] = None,
        details: Optional[dict] = None,
        notify_admins: bool = True,
    ) -> Optional[OperationalAlert]:
        logger.error(f"[{alert_type.value}] {message}")
        try:
            alert = await OperationalAlert.create(
                alert_type=alert_type,
                message=message,
                processor=processor,
                resource_id=resource_id,
                order=order,
                details=details,
            )
        except Exception as e:
            logger.error(f"Failed to persist {alert_type.value} alert: {e}")
            return None

        AlertService._publish(alert)

        if notify_admins:
            await NotificationService.notify_admins(
                NotificationType.operational_alert,
                title=f"Alert: {alert_type.value.replace('_', ' ')}",
                message=message,
                related_order=order,
                metadata={"alert_id": str(alert.id), "resource_id": resource_id},
            )
        return alert

    @staticmethod
    def _publish(alert: OperationalAlert):
        producer = get_kafka_producer()
        if producer is None:
            return
        try:
            producer.produce_json(
                settings.KAFKA_TOPIC_ALERTS,
                {
                    "id": str(alert.id),
                    "type": alert.alert_type.value,
                    "message": alert.message,
                    "processor": alert.processor,
                    "resource_id": alert.resource_id,
                    "order_id": str(alert.order_id) if alert.order_id else None,
                },
                key=alert.resource_id,
            )
        except Exception as e:
            logger.error(f"Error publishing alert {alert.id}: {e}")
