"""
RPC argument and result schemas.

Field aliases are the exact member names existing clients put on the
wire (``ID``, ``Bytes``, ``MaxPartSize``, ...). Every result carries an
``Error`` string: empty on success, otherwise a human-readable reason.
Callers must check it before trusting any other field.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import Field

from ddc.app.schemas.document import (
    AttachedFile,
    B64Bytes,
    SignatureInfo,
    WireModel,
)


# ---------------------------------------------------------------------------
# Envelope (JSON-RPC 1.0, as spoken by net/rpc/jsonrpc clients)
# ---------------------------------------------------------------------------


class RpcRequest(WireModel):
    method: str
    params: Any = None
    id: Any = None

    def first_param(self) -> Any:
        """Return the single argument object of the call."""
        value = self.params
        if isinstance(value, list):
            value = value[0] if value else None
        return {} if value is None else value


class RpcResponse(WireModel):
    id: Any = None
    result: Any = None
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Shared shapes
# ---------------------------------------------------------------------------


class SessionArgs(WireModel):
    session_id: str = Field("", alias="ID")


class ErrorResp(WireModel):
    error: str = Field("", alias="Error")


class RegisterResp(ErrorResp):
    session_id: str = Field("", alias="ID")


class PartResp(ErrorResp):
    part: B64Bytes = Field(b"", alias="Part")
    is_final: bool = Field(False, alias="IsFinal")


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class BuilderRegisterArgs(WireModel):
    title: str = Field("", alias="Title")
    description: str = Field("", alias="Description")
    document_id: str = Field("", alias="ID")
    id_qr_code: Optional[B64Bytes] = Field(None, alias="IDQRCode")
    file_name: str = Field("", alias="FileName")
    language: str = Field("", alias="Language")


class BuilderAppendDocumentPartArgs(SessionArgs):
    data: B64Bytes = Field(b"", alias="Bytes")


class BuilderAppendSignatureArgs(SessionArgs):
    signature_info: SignatureInfo = Field(
        default_factory=SignatureInfo, alias="SignatureInfo"
    )


class BuilderBuildArgs(SessionArgs):
    # Display string, e.g. "2021.01.31 13:45:00 UTC+6"
    creation_date: str = Field("", alias="CreationDate")
    builder_name: str = Field("", alias="BuilderName")
    how_to_verify: str = Field("", alias="HowToVerify")
    without_document_visualization: bool = Field(
        False, alias="WithoutDocumentVisualization"
    )
    without_signatures_visualization: bool = Field(
        False, alias="WithoutSignaturesVisualization"
    )


class BuilderGetDDCPartArgs(SessionArgs):
    max_part_size: int = Field(0, alias="MaxPartSize")


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


class ExtractorRegisterArgs(WireModel):
    pass


class ExtractorAppendDDCPartArgs(SessionArgs):
    part: B64Bytes = Field(b"", alias="Part")


class ExtractorParseResp(ErrorResp):
    document_file_name: str = Field("", alias="DocumentFileName")


class ExtractorGetDocumentPartArgs(SessionArgs):
    max_part_size: int = Field(0, alias="MaxPartSize")
    rewind: bool = Field(False, alias="Rewind")


class ExtractorGetSignatureResp(ErrorResp):
    signature: AttachedFile = Field(
        default_factory=AttachedFile, alias="Signature"
    )
    is_final: bool = Field(False, alias="IsFinal")
