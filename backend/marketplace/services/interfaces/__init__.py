"""
Service interfaces for dependency inversion.
Allows swapping collaborator implementations without changing engine logic.
"""

from .refund_sink import LoggingRefundSink, RefundSink

__all__ = ["RefundSink", "LoggingRefundSink"]
