"""
Document card descriptor schemas.

These models describe what goes into a Digital Document Card: the
document being carded and the signatures attached to it. Field aliases
match the JSON names used by existing DDC clients, and every byte field
travels as a standard base64 string.

Signature bodies and visualization data are opaque to this service.
Nothing here parses or verifies a signature.
"""

from __future__ import annotations

import base64
import binascii
from typing import Annotated, Any, List, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
)


# ---------------------------------------------------------------------------
# Wire helpers
# ---------------------------------------------------------------------------


def _decode_base64(value: Any) -> Any:
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"invalid base64 payload: {exc}") from exc
    return value


def _encode_base64(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _none_to_empty_list(value: Any) -> Any:
    return [] if value is None else value


B64Bytes = Annotated[
    bytes,
    BeforeValidator(_decode_base64),
    PlainSerializer(_encode_base64, return_type=str, when_used="json"),
]

StrList = Annotated[List[str], BeforeValidator(_none_to_empty_list)]


class WireModel(BaseModel):
    """Base for models that cross the RPC boundary."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# Signature visualization
# ---------------------------------------------------------------------------


class TimestampDetails(WireModel):
    """Time-stamp (TSP) response details, pre-formatted by the caller."""

    generated_at: str = Field("", alias="generatedAt")
    serial_number: str = Field("", alias="serialNumber")
    subject: str = ""
    issuer: str = ""


class OCSPDetails(WireModel):
    """OCSP response details, pre-formatted by the caller."""

    generated_at: str = Field("", alias="generatedAt")
    cert_status: str = Field("", alias="certStatus")
    serial_number: str = Field("", alias="serialNumber")
    subject: str = ""
    issuer: str = ""


class SignatureVisualization(WireModel):
    """
    Everything printed on a signature page.

    Date fields are display strings such as ``19.05.2021 04:01:52 UTC+6``;
    list entries are ``Human readable name (OID)`` strings.
    """

    subject_name: str = Field("", alias="subjectName")
    subject_id: str = Field("", alias="subjectID")
    subject_org_name: str = Field("", alias="subjectOrgName")
    subject_org_id: str = Field("", alias="subjectOrgID")
    subject: str = ""
    subject_alt_name: str = Field("", alias="subjectAltName")
    serial_number: str = Field("", alias="serialNumber")
    valid_from: str = Field("", alias="from")
    valid_until: str = Field("", alias="until")
    policies: StrList = Field(default_factory=list)
    key_usage: StrList = Field(default_factory=list, alias="keyUsage")
    ext_key_usage: StrList = Field(default_factory=list, alias="extKeyUsage")
    issuer: str = ""
    signature_algorithm: str = Field("", alias="signatureAlgorithm")
    tsp: TimestampDetails = Field(default_factory=TimestampDetails)
    ocsp: OCSPDetails = Field(default_factory=OCSPDetails)
    qr_codes: Annotated[
        List[B64Bytes], BeforeValidator(_none_to_empty_list)
    ] = Field(default_factory=list, alias="qrCodes")


class SignatureInfo(WireModel):
    """A signature to embed into the card, optionally visualized."""

    body: B64Bytes = b""
    file_name: str = Field("", alias="fileName")
    signer_name: str = Field("", alias="signerName")
    signature_visualization: Optional[SignatureVisualization] = Field(
        None, alias="signatureVisualization"
    )


# ---------------------------------------------------------------------------
# Document descriptor
# ---------------------------------------------------------------------------


class DocumentInfo(WireModel):
    """Descriptor of the carded document and its signatures."""

    title: str = ""
    description: str = ""
    id: str = ""
    id_qr_code: Optional[B64Bytes] = Field(None, alias="idQRCode")
    link_qr_code: Optional[B64Bytes] = Field(None, alias="linkQRCode")
    builder_logo: Optional[B64Bytes] = Field(None, alias="builderLogo")
    sub_builder_logo_string: str = Field("", alias="subBuilderLogoString")
    signatures: Annotated[
        List[SignatureInfo], BeforeValidator(_none_to_empty_list)
    ] = Field(default_factory=list)
    language: str = ""


class AttachedFile(WireModel):
    """A named blob extracted from a card."""

    name: str = Field("", alias="Name")
    data: B64Bytes = Field(b"", alias="Bytes")
