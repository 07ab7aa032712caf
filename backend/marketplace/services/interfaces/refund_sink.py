"""
Refund sink interface.
The engine hands refund intents to a sink after the cancelling transaction
commits; settling the refund with the processor happens elsewhere.
"""

from abc import ABC, abstractmethod

from marketplace.core.logging import get_logger
from marketplace.schemas.booking import RefundIntent

logger = get_logger(__name__)


class RefundSink(ABC):
    """
    Destination for refund intents.

    Implementations:
    - LoggingRefundSink: structured log line only (development, tests)
    - RedisRefundSink: appends to a Redis stream consumed by a refund worker
    """

    @abstractmethod
    async def emit(self, intent: RefundIntent) -> None:
        """
        Publish a refund intent. Errors may propagate; the engine logs and
        counts them, and the booking stays CANCELLED either way.
        """


class LoggingRefundSink(RefundSink):
    """Writes intents to the log. Use when no refund worker is deployed."""

    async def emit(self, intent: RefundIntent) -> None:
        logger.info(
            "refund_intent",
            booking_id=intent.booking_id,
            payment_id=intent.payment_id,
            processor_id=intent.processor_id,
            amount=str(intent.amount),
            reason=intent.reason,
        )
