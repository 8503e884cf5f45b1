"""
clamd INSTREAM client.

Protocol (clamd(8), INSTREAM):

- ``nINSTREAM\\n`` opens the stream
- each chunk is prefixed by its length as a 4-byte big-endian integer
- a zero-length chunk terminates the stream
- clamd answers with a single line and closes the connection

Only the exact reply ``stream: OK\\n`` is a clean verdict. Anything else
(``FOUND``, ``ERROR``, size-limit replies) rejects the payload.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import struct
from typing import Optional, Protocol, Tuple

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
)

from ddc.app.core.config import Settings
from ddc.app.core.errors import ScanRejectedError, ScanTransportError

logger = logging.getLogger("ddc.clamav")


CHUNK_SIZE = 1 << 20
INSTREAM_COMMAND = b"nINSTREAM\n"
CLEAN_RESPONSE = b"stream: OK\n"

_MAX_CHUNK_LENGTH = 0xFFFFFFFF


def encode_chunk_length(length: int) -> bytes:
    """Encode a chunk length prefix. Lengths outside uint32 are a bug."""
    if length < 0 or length > _MAX_CHUNK_LENGTH:
        raise ValueError(f"chunk length {length} does not fit in uint32")
    return struct.pack(">I", length)


def _split_host_port(address: str) -> Tuple[str, int]:
    host, _, port = address.rpartition(":")
    if not host or not port.isdigit():
        raise ValueError(
            f"clamd tcp address must be 'host:port', got '{address}'"
        )
    return host.strip("[]"), int(port)


class Scanner(Protocol):
    async def scan(self, data: bytes) -> None:
        """Return on a clean verdict, raise a ``DDCError`` otherwise."""
        ...


class NullScanner:
    """Accepts everything. Used when no clamd socket is configured."""

    async def scan(self, data: bytes) -> None:
        return None


class ClamAVScanner:
    """
    Streams byte buffers to clamd for a verdict.

    A fresh connection is opened per scan. Dialing is retried on
    connection errors and timeouts; once connected, any I/O failure
    aborts the scan.
    """

    def __init__(
        self,
        network: str,
        address: str,
        *,
        dial_timeout: float = 1.0,
        dial_attempts: int = 10,
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        if network not in ("unix", "tcp"):
            raise ValueError(f"unsupported clamd network '{network}'")
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        # Fail at construction rather than mid-stream
        encode_chunk_length(chunk_size)

        self.network = network
        self.address = address
        self._tcp_endpoint = (
            _split_host_port(address) if network == "tcp" else None
        )
        self.dial_timeout = dial_timeout
        self.dial_attempts = dial_attempts
        self.chunk_size = chunk_size

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def _open(self):
        if self._tcp_endpoint is None:
            return asyncio.open_unix_connection(self.address)
        host, port = self._tcp_endpoint
        return asyncio.open_connection(host, port)

    async def _connect(
        self,
    ) -> Tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.dial_attempts),
            retry=retry_if_exception_type((OSError, asyncio.TimeoutError)),
            reraise=True,
        ):
            with attempt:
                number = attempt.retry_state.attempt_number
                if number > 1:
                    logger.debug(
                        "clamd_dial_retry",
                        extra={"attempt": number, "address": self.address},
                    )
                return await asyncio.wait_for(
                    self._open(), timeout=self.dial_timeout
                )
        raise AssertionError("unreachable")  # pragma: no cover

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    async def scan(self, data: bytes) -> None:
        try:
            reader, writer = await self._connect()
        except (OSError, asyncio.TimeoutError) as exc:
            logger.error(
                "clamd_unreachable",
                extra={
                    "address": self.address,
                    "attempts": self.dial_attempts,
                },
            )
            raise ScanTransportError(
                f"failed to connect to clamd at '{self.address}': {exc!r}"
            ) from exc

        try:
            response = await self._stream(reader, writer, data)
        except OSError as exc:
            raise ScanTransportError(
                f"failed to stream data to clamd: {exc!r}"
            ) from exc
        finally:
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()

        if response != CLEAN_RESPONSE:
            text = response.decode("utf-8", errors="replace")
            logger.warning(
                "clamd_rejected_stream",
                extra={"response": text.strip(), "size": len(data)},
            )
            raise ScanRejectedError(f"unexpected response from clamd '{text}'")

        logger.debug("clamd_stream_clean", extra={"size": len(data)})

    async def _stream(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        data: bytes,
    ) -> bytes:
        writer.write(INSTREAM_COMMAND)

        view = memoryview(data)
        for offset in range(0, len(view), self.chunk_size):
            chunk = view[offset:offset + self.chunk_size]
            writer.write(encode_chunk_length(len(chunk)))
            writer.write(chunk)
            await writer.drain()

        writer.write(encode_chunk_length(0))
        await writer.drain()

        return await reader.read()


def build_scanner(settings: Settings) -> Scanner:
    """Return the scanner selected by configuration."""
    socket: Optional[str] = settings.clamd_socket
    if socket is None:
        logger.warning("clamav_scanning_disabled")
        return NullScanner()

    return ClamAVScanner(
        settings.clamd_network,
        socket,
        dial_timeout=settings.clamd_dial_timeout,
        dial_attempts=settings.clamd_dial_attempts,
    )
