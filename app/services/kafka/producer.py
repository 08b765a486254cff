import json
from typing import Optional

from confluent_kafka import Producer
from loguru import logger

from app.core.config import settings
from app.core.config.kafka import KafkaConfig


class KafkaProducer:
    def __init__(self):
        self.producer = Producer(KafkaConfig.get_producer_config())

    def delivery_report(self, err, msg):
        if err is not None:
            logger.error(f"Message delivery failed: {err}")
        else:
            logger.debug(f"Message delivered to {msg.topic()} [{msg.partition()}]")

    def produce(self, topic: str, value: str, key: str = None):
        self.producer.produce(
            topic=topic,
            key=key,
            value=value,
            callback=self.delivery_report
        )
        # poll(0) serves delivery callbacks without blocking
        self.producer.poll(0)

    def produce_json(self, topic: str, payload: dict, key: str = None):
        self.produce(topic, json.dumps(payload, default=str), key=key)

    def flush(self, timeout: float = 10.0):
        self.producer.flush(timeout)


_producer: Optional[KafkaProducer] = None


def get_kafka_producer() -> Optional[KafkaProducer]:
    """Shared producer, or None when Kafka is not configured."""
    global _producer
    if not settings.kafka_enabled:
        return None
    if _producer is None:
        _producer = KafkaProducer()
    return _producer


def close_kafka_producer():
    global _producer
    if _producer is not None:
        _producer.flush()
        _producer = None
