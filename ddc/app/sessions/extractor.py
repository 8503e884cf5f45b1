"""
Extractor session: takes a card apart.

Lifecycle::

    Register -> AppendDDCPart* -> Parse
             -> GetDocumentPart* (rewindable) / GetSignature* -> Drop

Parse scans the card, extracts its attachments and scans each of them.
The session only becomes readable if every step succeeds.
"""

from __future__ import annotations

import enum
import logging
from collections import deque
from typing import Callable, Deque, List, Optional, Tuple

import anyio

from ddc.app.core.errors import InvalidInputError, InvalidStateError, ParseError
from ddc.app.schemas.document import AttachedFile
from ddc.app.services.attachments import extract_attachments
from ddc.app.services.clamav import Scanner
from ddc.app.sessions.store import SessionKind

logger = logging.getLogger("ddc.sessions")

MIN_ATTACHMENTS = 2

Extract = Callable[[bytes], List[AttachedFile]]


class ExtractorState(str, enum.Enum):
    ACCUMULATING = "accumulating"
    PARSED = "parsed"


class ExtractorSession:
    kind = SessionKind.EXTRACTOR

    def __init__(self) -> None:
        self.state = ExtractorState.ACCUMULATING
        self.input = bytearray()
        self.document: Optional[AttachedFile] = None
        self.cursor = 0
        self.signatures: Deque[AttachedFile] = deque()

    def _require_accumulating(self) -> None:
        if self.state is not ExtractorState.ACCUMULATING:
            raise InvalidStateError("DDC already parsed")

    def _require_parsed(self) -> AttachedFile:
        if self.state is not ExtractorState.PARSED or self.document is None:
            raise InvalidStateError("DDC not parsed")
        return self.document

    def append_ddc_part(self, data: bytes) -> None:
        self._require_accumulating()
        self.input.extend(data)

    async def parse(
        self,
        scanner: Scanner,
        extract: Extract = extract_attachments,
    ) -> str:
        """Split the card into document and signatures; return file name."""
        self._require_accumulating()

        card = bytes(self.input)
        await scanner.scan(card)

        attachments = await anyio.to_thread.run_sync(extract, card)
        if len(attachments) < MIN_ATTACHMENTS:
            raise ParseError(
                f"PDF contains less than {MIN_ATTACHMENTS} attachments "
                f"({len(attachments)})"
            )

        for attachment in attachments:
            await scanner.scan(attachment.data)

        document, *signatures = attachments
        self.document = document
        self.cursor = 0
        self.signatures = deque(signatures)
        self.state = ExtractorState.PARSED

        logger.info(
            "ddc_parsed",
            extra={
                "ddc_size": len(card),
                "document_size": len(document.data),
                "signatures": len(signatures),
            },
        )
        return document.name

    def get_document_part(
        self,
        max_part_size: int,
        rewind: bool = False,
    ) -> Tuple[bytes, bool]:
        document = self._require_parsed()
        if max_part_size < 1:
            raise InvalidInputError("max part size must be positive")

        if rewind:
            self.cursor = 0

        end = min(self.cursor + max_part_size, len(document.data))
        part = document.data[self.cursor:end]
        self.cursor = end
        return part, self.cursor >= len(document.data)

    def get_signature(self) -> Tuple[AttachedFile, bool]:
        self._require_parsed()
        if not self.signatures:
            raise InvalidStateError("all signatures have already been retrieved")

        signature = self.signatures.popleft()
        return signature, not self.signatures
