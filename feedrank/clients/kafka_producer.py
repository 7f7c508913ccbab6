"""
Async Kafka producer.

Publishes one event type:
  impressions  — emitted when an impression is accepted by POST /explore/impression.
                 Consumed by downstream analytics; the impression_events table
                 stays the source of truth for de-duplication.
"""
import json
import logging
from typing import Optional

from aiokafka import AIOKafkaProducer

from feedrank.config import settings

logger = logging.getLogger(__name__)

_producer: Optional[AIOKafkaProducer] = None


async def init_kafka() -> None:
    global _producer
    _producer = AIOKafkaProducer(
        bootstrap_servers=settings.kafka_bootstrap_servers,
        value_serializer=lambda v: json.dumps(v).encode("utf-8"),
        acks="all",          # wait for all in-sync replicas
        enable_idempotence=True,
    )
    await _producer.start()
    logger.info(
        "Kafka producer started → %s", settings.kafka_bootstrap_servers
    )


async def stop_kafka() -> None:
    if _producer:
        await _producer.stop()


def get_producer() -> AIOKafkaProducer:
    if _producer is None:
        raise RuntimeError("Kafka producer not initialised")
    return _producer


async def publish_impression(
    user_id: str,
    post_id: str,
    session_id: str,
    position: Optional[int],
    source: str,
    timestamp_ms: int,
) -> None:
    """
    Emit an accepted impression. Scheduled before the request transaction
    commits, so consumers may see an event whose row later rolls back.
    Best effort: a broker failure is logged and dropped.
    """
    payload = {
        "user_id": user_id,
        "post_id": post_id,
        "session_id": session_id,
        "position": position,
        "source": source,
        "timestamp": timestamp_ms,
    }
    try:
        producer = get_producer()
        await producer.send(settings.kafka_topic_impressions, payload)
    except Exception as exc:
        logger.warning(
            "Impression publish failed (user=%s post=%s): %s", user_id, post_id, exc
        )
        return
    logger.debug("Published impression event for user_id=%s post_id=%s", user_id, post_id)
