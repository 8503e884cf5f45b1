"""
Tests for the card renderer and its label helpers.

Cards are inspected with pikepdf: page count, imported document pages
and the attachment list (document first, then signatures in order).
"""

import io

import pikepdf
import pytest

from ddc.app.core.errors import InvalidInputError, RenderError
from ddc.app.schemas.document import (
    DocumentInfo,
    OCSPDetails,
    SignatureInfo,
    SignatureVisualization,
    TimestampDetails,
)
from ddc.app.services import translations as tr
from ddc.app.services.attachments import extract_attachments
from ddc.app.services.renderer import (
    DocumentRenderer,
    inspect_pdf,
    signer_display_name,
    truncate_description,
)
from ddc.tests.fixtures.pdf_factory import landscape_pdf, png_bytes, sample_pdf


def visualization(**overrides) -> SignatureVisualization:
    params = dict(
        subject_name="ИВАНОВ ИВАН",
        subject_id="123456789012",
        subject_org_name="ТОО Тест",
        subject_org_id="987654321098",
        subject="CN=ИВАНОВ ИВАН,SERIALNUMBER=IIN123456789012",
        subject_alt_name="email:test@example.kz",
        serial_number="0a1b2c",
        valid_from="19.05.2021 04:01:52 UTC+6",
        valid_until="19.05.2022 04:01:52 UTC+6",
        policies=["Политика (1.2.398.3.3.2.1)"],
        key_usage=["Цифровая подпись (digitalSignature)"],
        ext_key_usage=["Защищенная электронная почта (1.3.6.1.5.5.7.3.4)"],
        issuer="CN=НУЦ РК (GOST) 2020",
        signature_algorithm="GOST 34.310-2004",
        tsp=TimestampDetails(generated_at="19.05.2021 04:05:00 UTC+6", serial_number="1"),
        ocsp=OCSPDetails(cert_status="GOOD", generated_at="19.05.2021 04:05:01 UTC+6"),
        qr_codes=[png_bytes(), png_bytes(), png_bytes(), png_bytes(), png_bytes()],
    )
    params.update(overrides)
    return SignatureVisualization(**params)


def document_info(signatures=2, **overrides) -> DocumentInfo:
    params = dict(
        title="Договор поставки",
        description="Договор поставки оборудования № 15 " * 4,
        signatures=[
            SignatureInfo(
                body=f"cms-{n}".encode(),
                file_name=f"doc.pdf.{n}.cms",
                signature_visualization=visualization(),
            )
            for n in range(1, signatures + 1)
        ],
    )
    params.update(overrides)
    return DocumentInfo(**params)


@pytest.fixture(scope="module")
def renderer():
    return DocumentRenderer()


def render(renderer, info, document, **options):
    params = dict(
        creation_date="2021.05.19 10:00:00 UTC+6",
        builder_name="Тестовый сервис",
        how_to_verify="Проверьте подписи на https://example.kz",
    )
    params.update(options)
    return renderer.render(info, document, "doc.pdf", **params)


def page_count(card: bytes) -> int:
    with pikepdf.open(io.BytesIO(card)) as pdf:
        return len(pdf.pages)


# ---------------------------------------------------------------------------
# Full cards
# ---------------------------------------------------------------------------

def test_card_contains_all_visualizations(renderer):
    info = document_info()
    document = sample_pdf(pages=3)

    info_only = render(
        renderer, info, document,
        visualize_document=False, visualize_signatures=False,
    )
    full = render(renderer, info, document)

    info_pages = page_count(info_only)
    assert info_pages >= 1
    assert page_count(full) == info_pages + 3 + 2


def test_attachments_preserve_order_and_bytes(renderer):
    document = sample_pdf(pages=1)

    card = render(renderer, document_info(signatures=3), document)

    attachments = extract_attachments(card)
    assert [a.name for a in attachments] == [
        "doc.pdf", "doc.pdf.1.cms", "doc.pdf.2.cms", "doc.pdf.3.cms",
    ]
    assert attachments[0].data == document
    assert [a.data for a in attachments[1:]] == [b"cms-1", b"cms-2", b"cms-3"]


def test_attachment_descriptions_are_translated(renderer):
    info = document_info(signatures=1, language="kk")

    card = render(renderer, info, sample_pdf(pages=1))

    with pikepdf.open(io.BytesIO(card)) as pdf:
        descriptions = [
            str(pdf.attachments[key].description)
            for key in sorted(pdf.attachments.keys())
        ]
    assert descriptions == [
        "Электрондық құжаттың түпнұсқасы",
        "ЭСҚ, ИВАНОВ ИВАН",
    ]


def test_document_pages_are_imported_as_forms(renderer):
    info = document_info(signatures=0)

    info_only = render(
        renderer, info, sample_pdf(pages=2),
        visualize_document=False, visualize_signatures=False,
    )
    card = render(renderer, info, sample_pdf(pages=2), visualize_signatures=False)

    first_document_page = page_count(info_only)
    with pikepdf.open(io.BytesIO(card)) as pdf:
        page = pdf.pages[first_document_page]
        xobjects = page.obj.Resources.XObject
        has_form = any(
            xobjects[name].get("/Subtype") == pikepdf.Name.Form
            for name in xobjects.keys()
        )
    assert has_form


def test_header_images_and_bilingual_labels_render(renderer):
    info = document_info(
        id="KZ-2021-0001",
        id_qr_code=png_bytes((32, 32)),
        link_qr_code=png_bytes((48, 48)),
        builder_logo=png_bytes((260, 130), "navy"),
        sub_builder_logo_string="example.kz",
        language="kk/ru",
    )

    card = render(renderer, info, landscape_pdf())

    assert card.startswith(b"%PDF-")
    assert len(extract_attachments(card)) == 3


def test_non_pdf_document_can_be_carded_without_visualization(renderer):
    card = render(
        renderer, document_info(signatures=1), b"plain text document",
        visualize_document=False,
    )

    attachments = extract_attachments(card)
    assert attachments[0].data == b"plain text document"


def test_non_pdf_document_cannot_be_visualized(renderer):
    with pytest.raises(RenderError, match="visualization of non-PDF files is not available"):
        render(renderer, document_info(), b"plain text document")


def test_signature_visualization_requires_details(renderer):
    info = document_info(signatures=0)
    info.signatures.append(
        SignatureInfo(body=b"cms", file_name="doc.pdf.cms", signer_name="Signer")
    )

    with pytest.raises(RenderError, match="no signature visualization information provided"):
        render(renderer, info, sample_pdf(pages=1))

    # Without signature pages the same card builds
    card = render(renderer, info, sample_pdf(pages=1), visualize_signatures=False)
    assert len(extract_attachments(card)) == 2


def test_broken_image_is_a_render_error(renderer):
    info = document_info(signatures=0, link_qr_code=b"not a png")

    with pytest.raises(RenderError):
        render(renderer, info, sample_pdf(pages=1))


def test_long_info_block_spans_pages(renderer):
    info = document_info(signatures=0)
    short = render(renderer, info, sample_pdf(pages=1), visualize_document=False)

    long = render(
        renderer, info, sample_pdf(pages=1),
        visualize_document=False,
        how_to_verify="\n".join(["Шаг проверки подписи"] * 80),
    )

    assert page_count(long) > page_count(short)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def test_inspect_pdf_reports_page_sizes_in_mm():
    sizes = inspect_pdf(sample_pdf(pages=2))

    assert len(sizes) == 2
    width, height = sizes[0]
    assert width == pytest.approx(210, abs=0.5)
    assert height == pytest.approx(297, abs=0.5)


def test_inspect_pdf_rejects_non_pdf():
    assert inspect_pdf(b"not a pdf") is None


def test_description_is_truncated_for_footer():
    assert truncate_description("a" * 87) == "a" * 87
    assert truncate_description("a" * 88) == "a" * 87 + "..."
    assert len(truncate_description("б" * 500)) == 90


def test_signer_name_fallbacks():
    explicit = SignatureInfo(signer_name="Signer")
    by_subject = SignatureInfo(signer_name="Signer", signature_visualization=visualization())
    by_iin = SignatureInfo(
        signature_visualization=visualization(subject_name="", subject_id="111"),
    )

    assert signer_display_name(explicit) == "Signer"
    assert signer_display_name(by_subject) == "ИВАНОВ ИВАН"
    assert signer_display_name(by_iin) == "ИИН 111"
    assert signer_display_name(by_iin, "kk") == "ЖСН 111"

    with pytest.raises(InvalidInputError, match="subject ID not provided"):
        signer_display_name(SignatureInfo())


def test_empty_visualization_hides_signer_name():
    blank = SignatureInfo(
        signer_name="Signer",
        signature_visualization=SignatureVisualization(),
    )

    with pytest.raises(InvalidInputError, match="subject ID not provided"):
        signer_display_name(blank)


def test_translations_fall_back_to_russian():
    assert tr.translate("", tr.CARD_TITLE) == tr.CARD_TITLE
    assert tr.translate("ru", tr.CARD_TITLE) == tr.CARD_TITLE
    assert tr.translate("kk", tr.PAGE_OF).format(page=2, total=5) == "5 беттің 2 беті"
    assert tr.translate("kk", "Несуществующая строка") == "Несуществующая строка"


def test_bilingual_labels_carry_both_languages():
    label = tr.translate("kk/ru", tr.CARD_FOOTER)

    assert "Электрондық құжат карточкасы" in label
    assert "Карточка электронного документа" in label
