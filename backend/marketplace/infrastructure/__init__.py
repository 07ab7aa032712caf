"""
Infrastructure layer - external system integrations.
Keeps engine logic clean from transport details.
"""

from .refund_stream import RedisRefundSink

__all__ = ["RedisRefundSink"]
