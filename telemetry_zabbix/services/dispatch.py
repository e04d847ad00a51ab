"""Interpretation of Zabbix send outcomes.

Nothing here retries: a batch that fails, fully or partially, is logged
and dropped.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence

from telemetry_zabbix.core.logger import get_logger
from telemetry_zabbix.core.metrics import (
    TRANSPORT_ERRORS_TOTAL,
    VALUES_REJECTED_TOTAL,
    VALUES_SENT_TOTAL,
)
from telemetry_zabbix.infrastructure.zabbix.protocol import ItemValue, SendResult
from telemetry_zabbix.infrastructure.zabbix.sender import Transport, TransportError

logger = get_logger("dispatch")


class DeliveryStatus(str, Enum):
    DELIVERED = "delivered"
    PARTIAL_FAILURE = "partial_failure"
    TRANSPORT_ERROR = "transport_error"


def distinct_keys(values: Sequence[ItemValue]) -> list[str]:
    return list(dict.fromkeys(v.key for v in values))


def classify(result: SendResult, values: Sequence[ItemValue]) -> DeliveryStatus:
    if result.failed == 0:
        logger.debug(
            "batch_delivered: server processed %d values",
            result.total,
            extra={"total": result.total},
        )
        return DeliveryStatus.DELIVERED

    VALUES_REJECTED_TOTAL.inc(result.failed)
    # The server does not say which values failed, so report every key sent
    keys = distinct_keys(values)
    logger.warning(
        "batch_partially_rejected: server could not process %d out of %d values, keys %s",
        result.failed,
        result.total,
        keys,
        extra={"failed": result.failed, "total": result.total, "keys": keys},
    )
    return DeliveryStatus.PARTIAL_FAILURE


def classify_transport_error(error: TransportError) -> DeliveryStatus:
    TRANSPORT_ERRORS_TOTAL.inc()
    logger.warning(
        "batch_send_failed: could not send values due to %s",
        error.reason,
        extra={"reason": error.reason, "error": str(error)},
    )
    return DeliveryStatus.TRANSPORT_ERROR


async def deliver(
    transport: Transport, values: Sequence[ItemValue], clock: Optional[int]
) -> DeliveryStatus:
    """Send one batch and classify the outcome. Never raises TransportError."""
    try:
        result = await transport.send_values(values, clock)
    except TransportError as exc:
        return classify_transport_error(exc)
    VALUES_SENT_TOTAL.inc(len(values))
    return classify(result, values)
