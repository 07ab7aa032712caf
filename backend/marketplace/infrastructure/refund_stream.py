"""
Redis stream refund sink.

Each intent becomes one XADD entry on REFUND_STREAM_KEY; a refund worker
reads the stream with a consumer group and talks to the payment processor.

Failure policy:
  Redis errors are logged with the stream key and re-raised. The engine
  counts them and carries on: the cancellation has already committed and
  the intent can be rebuilt later from payments.refund_requested_at.
"""

from typing import Optional

import redis.asyncio as redis

from marketplace.core.config import get_settings
from marketplace.core.logging import get_logger
from marketplace.schemas.booking import RefundIntent
from marketplace.services.interfaces.refund_sink import RefundSink

logger = get_logger(__name__)


class RedisRefundSink(RefundSink):
    def __init__(self, client: Optional[redis.Redis] = None, stream_key: Optional[str] = None):
        settings = get_settings()
        self._client = client
        self._stream_key = stream_key or settings.REFUND_STREAM_KEY
        self._maxlen = settings.REFUND_STREAM_MAXLEN

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            settings = get_settings()
            self._client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
        return self._client

    async def emit(self, intent: RefundIntent) -> None:
        fields = {
            key: "" if value is None else str(value)
            for key, value in intent.model_dump(mode="json").items()
        }
        try:
            entry_id = await self._get_client().xadd(
                self._stream_key, fields, maxlen=self._maxlen, approximate=True
            )
        except redis.RedisError as e:
            logger.error(
                "refund_stream_write_failed",
                booking_id=intent.booking_id,
                payment_id=intent.payment_id,
                stream_key=self._stream_key,
                error=str(e),
            )
            raise

        logger.info("refund_intent_emitted", booking_id=intent.booking_id, stream_entry=entry_id)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
