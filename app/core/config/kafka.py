from app.core.config import settings

class KafkaConfig:
    @staticmethod
    def get_producer_config():
        return {
            'bootstrap.servers': settings.KAFKA_BOOTSTRAP_SERVERS,
            'client.id': settings.app_name,
            'message.max.bytes': 1000000,
            'queue.buffering.max.messages': 100000,
            'enable.idempotence': True,
        }

    @staticmethod
    def topics() -> list[str]:
        return [settings.KAFKA_TOPIC_NOTIFICATIONS, settings.KAFKA_TOPIC_ALERTS]
