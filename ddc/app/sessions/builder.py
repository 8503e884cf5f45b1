"""
Builder session: turns a document and its signatures into a card.

Lifecycle::

    Register -> AppendDocumentPart* / AppendSignature* -> Build
             -> GetDDCPart* (until final) -> Drop

Appending is only allowed before Build, reading only after it. Every
payload passes the scanner before it is accepted; a rejected payload
leaves the session exactly as it was.
"""

from __future__ import annotations

import enum
import logging
from functools import partial
from typing import Optional, Tuple

import anyio

from ddc.app.core.errors import InvalidInputError, InvalidStateError
from ddc.app.schemas.document import DocumentInfo, SignatureInfo
from ddc.app.services.clamav import Scanner
from ddc.app.services.renderer import DocumentRenderer, validate_signature
from ddc.app.sessions.store import SessionKind

logger = logging.getLogger("ddc.sessions")


class BuilderState(str, enum.Enum):
    ACCUMULATING = "accumulating"
    BUILT = "built"


def read_part(buffer: bytearray, max_part_size: int) -> bytes:
    """Remove and return up to ``max_part_size`` bytes from the front."""
    if max_part_size < 1:
        raise InvalidInputError("max part size must be positive")
    part = bytes(buffer[:max_part_size])
    del buffer[:max_part_size]
    return part


class BuilderSession:
    kind = SessionKind.BUILDER

    def __init__(self, document_info: DocumentInfo, file_name: str) -> None:
        self.document_info = document_info
        self.file_name = file_name
        self.state = BuilderState.ACCUMULATING
        self.document = bytearray()
        self.output = bytearray()

    @classmethod
    def register(
        cls,
        *,
        title: str,
        description: str,
        file_name: str,
        document_id: str = "",
        id_qr_code: Optional[bytes] = None,
        language: str = "",
    ) -> "BuilderSession":
        if not file_name:
            raise InvalidInputError("document file name not provided")

        info = DocumentInfo(
            title=title,
            description=description,
            id=document_id,
            id_qr_code=id_qr_code or None,
            language=language,
        )
        return cls(info, file_name)

    def _require(self, state: BuilderState) -> None:
        if self.state is not state:
            if state is BuilderState.BUILT:
                raise InvalidStateError("DDC not built")
            raise InvalidStateError("DDC already built")

    # ------------------------------------------------------------------
    # Accumulation
    # ------------------------------------------------------------------

    def append_document_part(self, data: bytes) -> None:
        self._require(BuilderState.ACCUMULATING)
        self.document.extend(data)

    async def append_signature(
        self,
        signature: SignatureInfo,
        scanner: Scanner,
    ) -> None:
        self._require(BuilderState.ACCUMULATING)
        validate_signature(signature, self.document_info.language)

        await scanner.scan(signature.body)
        self.document_info.signatures.append(signature)

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    async def build(
        self,
        scanner: Scanner,
        renderer: DocumentRenderer,
        *,
        creation_date: str,
        builder_name: str,
        how_to_verify: str,
        visualize_document: bool = True,
        visualize_signatures: bool = True,
    ) -> None:
        self._require(BuilderState.ACCUMULATING)

        document = bytes(self.document)
        await scanner.scan(document)

        card = await anyio.to_thread.run_sync(
            partial(
                renderer.render,
                self.document_info,
                document,
                self.file_name,
                visualize_document=visualize_document,
                visualize_signatures=visualize_signatures,
                creation_date=creation_date,
                builder_name=builder_name,
                how_to_verify=how_to_verify,
            )
        )

        self.output = bytearray(card)
        self.state = BuilderState.BUILT
        logger.info(
            "ddc_built",
            extra={
                "document_size": len(document),
                "signatures": len(self.document_info.signatures),
                "ddc_size": len(card),
            },
        )

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def get_ddc_part(self, max_part_size: int) -> Tuple[bytes, bool]:
        """Return the next part and whether nothing is left after it."""
        self._require(BuilderState.BUILT)
        part = read_part(self.output, max_part_size)
        return part, not self.output
