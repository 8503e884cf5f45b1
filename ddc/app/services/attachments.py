"""
Attachment extraction from Digital Document Cards.

Reads document-level embedded files (``/Names -> /EmbeddedFiles``) and
returns them in name-tree order. Cards produced by this service key their
attachments with zero-padded indices; cards from other producers commonly
use ``Attachment1 .. AttachmentN``, so keys are compared naturally.
"""

import logging
import re
from io import BytesIO
from typing import List

import pikepdf

from ddc.app.core.errors import ParseError
from ddc.app.schemas.document import AttachedFile

logger = logging.getLogger("ddc.attachments")

_DIGITS = re.compile(r"(\d+)")


def _natural_key(name: str):
    return [
        (0, int(part), "") if part.isdigit() else (1, 0, part)
        for part in _DIGITS.split(name)
        if part
    ]


def extract_attachments(pdf_bytes: bytes) -> List[AttachedFile]:
    """
    Return every embedded file of ``pdf_bytes`` in attachment order.

    Raises ParseError if the bytes are not a readable PDF or an
    embedded file stream cannot be decoded.
    """
    try:
        with pikepdf.open(BytesIO(pdf_bytes)) as pdf:
            attachments = pdf.attachments
            files: List[AttachedFile] = []

            for key in sorted(attachments.keys(), key=_natural_key):
                filespec = attachments[key]
                name = filespec.filename or key
                data = filespec.get_file().read_bytes()
                files.append(AttachedFile(name=name, data=data))

    except pikepdf.PdfError as exc:
        raise ParseError(f"unable to read DDC: {exc}") from exc

    logger.debug(
        "attachments_extracted",
        extra={"count": len(files), "size": len(pdf_bytes)},
    )
    return files
