import io
from typing import Sequence, Tuple

import pikepdf
from PIL import Image


# ------------------------------------------------------------------
# Source documents
# ------------------------------------------------------------------

def sample_pdf(pages: int = 2, page_size=(595, 842)) -> bytes:
    """
    Produce a small multi-page PDF used as the carded document.

    Each page gets its own content stream so that imported pages are
    distinguishable inside a card.
    """
    buffer = io.BytesIO()
    with pikepdf.new() as pdf:
        for number in range(pages):
            pdf.add_blank_page(page_size=page_size)
            pdf.pages[-1].obj.Contents = pdf.make_stream(
                f"0 0 1 rg 10 10 {50 + number} 50 re f".encode()
            )
        pdf.save(buffer)
    return buffer.getvalue()


def landscape_pdf() -> bytes:
    return sample_pdf(pages=1, page_size=(842, 595))


# ------------------------------------------------------------------
# Cards from other producers
#
# Attachments keyed "Attachment1 .. AttachmentN" the way gofpdf
# names them, so that "Attachment10" sorts after "Attachment9".
# ------------------------------------------------------------------

def pdf_with_attachments(files: Sequence[Tuple[str, bytes]]) -> bytes:
    buffer = io.BytesIO()
    with pikepdf.new() as pdf:
        pdf.add_blank_page(page_size=(595, 842))
        for index, (name, data) in enumerate(files, start=1):
            pdf.attachments[f"Attachment{index}"] = pikepdf.AttachedFileSpec(
                pdf,
                data,
                filename=name,
            )
        pdf.save(buffer)
    return buffer.getvalue()


# ------------------------------------------------------------------
# Images
# ------------------------------------------------------------------

def png_bytes(size=(64, 64), color="black") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()
