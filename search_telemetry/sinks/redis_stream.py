"""Redis Streams sink for downstream telemetry consumers."""
import json
import logging
from typing import Optional, Sequence

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from search_telemetry.core.errors import SinkError
from search_telemetry.core.schemas import TelemetryEvent

logger = logging.getLogger(__name__)


class RedisStreamSink:
    """Appends each event to a Redis stream with XADD, one pipeline per batch."""

    def __init__(
        self,
        redis_client: redis.Redis,
        stream: str = "search-telemetry",
        maxlen: Optional[int] = 100000,
    ):
        self.redis = redis_client
        self.stream = stream
        self.maxlen = maxlen

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisStreamSink":
        return cls(redis.Redis.from_url(url, decode_responses=True), **kwargs)

    @staticmethod
    def _fields(event: TelemetryEvent) -> dict:
        wire = event.to_wire()
        return {
            "eventType": wire["eventType"],
            "searchId": wire["searchId"],
            "eventId": wire["eventId"],
            "payload": json.dumps(wire, sort_keys=True),
        }

    async def send(self, events: Sequence[TelemetryEvent]) -> None:
        try:
            async with self.redis.pipeline(transaction=False) as pipe:
                for event in events:
                    pipe.xadd(self.stream, self._fields(event), maxlen=self.maxlen, approximate=True)
                await pipe.execute()
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise SinkError.transient(f"Redis unavailable: {e}") from e
        except ResponseError as e:
            raise SinkError.permanent(f"Redis rejected XADD to {self.stream}: {e}") from e
        except RedisError as e:
            raise SinkError.transient(f"Redis error: {e}") from e

        logger.debug(f"💾 Appended {len(events)} events to stream {self.stream}")

    async def close(self) -> None:
        await self.redis.aclose()
