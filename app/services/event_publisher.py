"""
Kafka event publisher — fire-and-forget.

Publishes screening events for downstream consumers
(CRM lead sync, dashboards, data warehouse sync).
Gracefully degrades if Kafka is unavailable.
"""
from __future__ import annotations

import json
import structlog
from app.core.config import get_settings
from app.schemas.screening_result import EnhancedScreeningResult

logger = structlog.get_logger()

_producer = None


async def _get_producer():
    global _producer
    settings = get_settings()
    if not settings.kafka_enabled:
        return None
    if _producer is None:
        from aiokafka import AIOKafkaProducer
        _producer = AIOKafkaProducer(bootstrap_servers=settings.kafka_bootstrap)
        await _producer.start()
    return _producer


def screening_event(result: EnhancedScreeningResult) -> dict:
    return {
        "event_type": "SCREENING_COMPLETED",
        "result_id": result.id,
        "tenant_id": result.tenant_id,
        "response_id": result.response_id,
        "template_id": result.template_id,
        "template_version": result.template_version,
        "lead_id": result.lead_id,
        "percentage_score": result.percentage_score,
        "qualification_level": result.qualification_level.value,
        "feasibility_rating": result.feasibility_rating.value,
        "risk_level": result.risk_level.value,
        "follow_up_priority": result.follow_up_priority.value,
        "calculated_at": result.calculation_metadata.calculated_at.isoformat(),
    }


async def publish_screening_event(result: EnhancedScreeningResult) -> None:
    settings = get_settings()
    if not settings.kafka_enabled:
        return

    try:
        producer = await _get_producer()
        if producer:
            await producer.send_and_wait(
                settings.kafka_topic_screening_events,
                json.dumps(screening_event(result)).encode("utf-8"),
                key=result.tenant_id.encode("utf-8"),
            )
            logger.info("kafka_event_published", result_id=result.id)
    except Exception as e:
        # Fire-and-forget: log but don't fail the request
        logger.warning("kafka_publish_failed", error=str(e))
