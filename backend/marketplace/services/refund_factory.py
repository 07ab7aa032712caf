"""
Refund sink factory.
Configures where refund intents go.
"""

from typing import Optional

from marketplace.core.config import get_settings
from marketplace.infrastructure.refund_stream import RedisRefundSink
from marketplace.services.interfaces.refund_sink import LoggingRefundSink, RefundSink


def build_refund_sink() -> RefundSink:
    """
    Sink selection:
    - "redis": RedisRefundSink, when REDIS_ENABLED
    - anything else: LoggingRefundSink

    Set with the REFUND_SINK env var.
    """
    settings = get_settings()
    if settings.REFUND_SINK == "redis" and settings.REDIS_ENABLED:
        return RedisRefundSink()
    return LoggingRefundSink()


# Singleton instance
_sink: Optional[RefundSink] = None


def get_refund_sink() -> RefundSink:
    global _sink
    if _sink is None:
        _sink = build_refund_sink()
    return _sink


async def close_refund_sink() -> None:
    global _sink
    if isinstance(_sink, RedisRefundSink):
        await _sink.close()
    _sink = None
