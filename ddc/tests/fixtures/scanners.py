import asyncio
import os
import struct
import tempfile
from typing import Iterable, List, Optional

from ddc.app.core.errors import ScanRejectedError

EICAR = (
    b"X5O!P%@AP[4\\PZX54(P^)7CC)7}$EICAR-STANDARD-ANTIVIRUS-TEST-FILE!$H+H*"
)
FOUND_RESPONSE = b"stream: Win.Test.EICAR_HDB-1 FOUND\n"


class RecordingScanner:
    """In-memory scanner: records payloads, rejects those containing EICAR."""

    def __init__(self, markers: Iterable[bytes] = (EICAR,)) -> None:
        self.markers = list(markers)
        self.scanned: List[bytes] = []

    async def scan(self, data: bytes) -> None:
        self.scanned.append(bytes(data))
        if any(marker in data for marker in self.markers):
            raise ScanRejectedError(
                f"unexpected response from clamd '{FOUND_RESPONSE.decode()}'"
            )


class FakeClamd:
    """
    Minimal clamd speaking INSTREAM over a unix socket.

    Records every received stream and the chunk sizes it arrived in.
    Replies ``stream: OK`` unless the stream contains the EICAR string.
    """

    def __init__(self, path: Optional[str] = None) -> None:
        self._tmpdir = None
        if path is None:
            # Short path: unix socket names are limited to ~100 bytes
            self._tmpdir = tempfile.TemporaryDirectory(prefix="clamd")
            path = os.path.join(self._tmpdir.name, "clamd.sock")
        self.path = path
        self.commands: List[bytes] = []
        self.streams: List[bytes] = []
        self.chunk_sizes: List[List[int]] = []
        self._server = None

    async def _handle(self, reader, writer) -> None:
        try:
            self.commands.append(await reader.readline())

            data = bytearray()
            sizes = []
            while True:
                (length,) = struct.unpack(">I", await reader.readexactly(4))
                if length == 0:
                    break
                data.extend(await reader.readexactly(length))
                sizes.append(length)

            self.streams.append(bytes(data))
            self.chunk_sizes.append(sizes)

            writer.write(FOUND_RESPONSE if EICAR in data else b"stream: OK\n")
            await writer.drain()
        finally:
            writer.close()

    async def __aenter__(self) -> "FakeClamd":
        self._server = await asyncio.start_unix_server(self._handle, path=self.path)
        return self

    async def __aexit__(self, *exc_info) -> None:
        self._server.close()
        await self._server.wait_closed()
        if self._tmpdir is not None:
            self._tmpdir.cleanup()
