"""Grant Analyzer — Streaming Sinks.

Delivers EnrichedGrant records to a consumer one framed message at a
time. Each message is a JSON array holding one record, followed by a
newline, so a reader can decode every line on its own as it arrives.

Sinks hold no queue: emit() returns only after the transport accepted
the message, which is what bounds the pipeline to one in-flight record.
"""

from __future__ import annotations

import asyncio
import json
from typing import TextIO

from aiohttp import web

from grant_analyzer.errors import SinkClosedError
from grant_analyzer.models import EnrichedGrant
from grant_analyzer.utils.logger import get_logger

logger = get_logger(__name__)

NDJSON_CONTENT_TYPE = "application/x-ndjson"


def encode_message(grant: EnrichedGrant) -> bytes:
    """Frame one record as a newline-terminated JSON array.

    Args:
        grant: The record to encode.

    Returns:
        UTF-8 bytes of one message.
    """
    return (json.dumps([grant.to_dict()], ensure_ascii=False) + "\n").encode("utf-8")


class GrantSink:
    """Base class for output channels.

    Subclasses implement _write() and _close(); this class enforces
    that nothing is written after close() and that close() runs once.

    Attributes:
        emitted: Number of records written so far.
    """

    def __init__(self) -> None:
        self.emitted: int = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def emit(self, grant: EnrichedGrant) -> None:
        """Write one record and wait until the transport accepted it.

        Args:
            grant: The record to deliver.

        Raises:
            SinkClosedError: If the sink is closed or the consumer is gone.
        """
        if self._closed:
            raise SinkClosedError("Sink is already closed")

        try:
            await self._write(encode_message(grant))
        except (ConnectionError, RuntimeError) as e:
            raise SinkClosedError(f"Consumer disconnected: {e}") from e
        self.emitted += 1

    async def close(self) -> None:
        """Close the channel. Later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._close()
        except (ConnectionError, RuntimeError) as e:
            logger.debug("Error while closing sink (consumer gone?): %s", e)
        logger.debug("Sink closed after %d records", self.emitted)

    async def _write(self, data: bytes) -> None:
        raise NotImplementedError

    async def _close(self) -> None:
        raise NotImplementedError


class StreamResponseSink(GrantSink):
    """Writes records into a prepared aiohttp StreamResponse.

    StreamResponse.write() drains the transport, so a slow reader
    suspends the pipeline instead of growing a buffer.
    """

    def __init__(self, response: web.StreamResponse) -> None:
        super().__init__()
        self._response = response

    async def _write(self, data: bytes) -> None:
        await self._response.write(data)

    async def _close(self) -> None:
        await self._response.write_eof()


class FileSink(GrantSink):
    """Writes records to a text stream such as sys.stdout."""

    def __init__(self, stream: TextIO) -> None:
        super().__init__()
        self._stream = stream

    async def _write(self, data: bytes) -> None:
        self._stream.write(data.decode("utf-8"))
        self._stream.flush()
        # Let other tasks run between records
        await asyncio.sleep(0)

    async def _close(self) -> None:
        self._stream.flush()
