"""
Tests for filename resolution and image attachment.
"""

import pytest

from catalog.db.models import ImageVariant, Product, Upload
from catalog.ingestion.image_linker import (
    ImageLinker,
    MATCHERS,
    attach_image,
    load_completed_uploads,
    match_case_insensitive,
    match_exact,
    match_without_extension,
)
from catalog.models.errors import NotFoundError, UploadNotReadyError
from catalog.models.summary import ImportRun


def _resolve(session_factory, filename, matchers=MATCHERS):
    with session_factory() as session:
        upload = ImageLinker(matchers).resolve(load_completed_uploads(session), filename)
        return upload.id if upload else None


def _add_product(session_factory, sku="SKU1"):
    with session_factory() as session:
        product = Product(sku=sku, name="Widget", price=5)
        session.add(product)
        session.commit()
        return product.id


def test_matchers_are_ordered():
    assert list(MATCHERS) == [match_exact, match_case_insensitive, match_without_extension]


def test_exact_match_beats_case_insensitive(session_factory, upload_image):
    upper = upload_image("Photo.png")
    lower = upload_image("photo.png")

    assert _resolve(session_factory, "photo.png") == lower
    assert _resolve(session_factory, "Photo.png") == upper


def test_case_insensitive_match_prefers_lowest_id(session_factory, upload_image):
    first = upload_image("Photo.png")
    upload_image("photo.png")

    assert _resolve(session_factory, "PHOTO.PNG") == first


def test_stem_match_ignores_extension(session_factory, upload_image):
    shoe = upload_image("Shoe.jpg")

    assert _resolve(session_factory, "shoe") == shoe
    # Files differing only by extension resolve to each other
    assert _resolve(session_factory, "shoe.png") == shoe


def test_stem_match_can_be_disabled(session_factory, upload_image):
    upload_image("Shoe.jpg")

    assert _resolve(session_factory, "shoe.png", matchers=[match_exact, match_case_insensitive]) is None


def test_only_completed_uploads_resolve(session_factory, ledger):
    ledger.submit_chunk("abc", 0, 2, "pending.png", b"a")

    assert _resolve(session_factory, "pending.png") is None


def test_link_reports_upload_without_variants(session_factory):
    with session_factory() as session:
        session.add(Upload(checksum="e" * 64, original_name="empty.png", total_chunks=1,
                           received_chunks=[0], status="completed"))
        session.add(Product(sku="SKU1", name="Widget", price=5))
        session.commit()

    run = ImportRun(has_image_column=True)
    with session_factory() as session:
        ImageLinker().link(session, {"SKU1": "empty.png"}, run)
        session.commit()

    assert run.summary.images_not_found == 1
    assert run.summary.errors == ["Image not found for SKU 'SKU1': empty.png (no image variants for upload)"]


def test_link_same_image_twice_counts_once(session_factory, upload_image):
    upload_image("a.png")
    _add_product(session_factory)
    linker = ImageLinker()

    first = ImportRun(has_image_column=True)
    second = ImportRun(has_image_column=True)
    for run in (first, second):
        with session_factory() as session:
            linker.link(session, {"SKU1": "a.png"}, run)
            session.commit()

    assert first.summary.images_linked == 1
    assert second.summary.images_linked == 0


def test_link_switches_to_new_image(session_factory, upload_image):
    upload_image("a.png")
    b = upload_image("b.png")
    _add_product(session_factory)
    linker = ImageLinker()

    for filename in ("a.png", "b.png"):
        with session_factory() as session:
            linker.link(session, {"SKU1": filename}, ImportRun(has_image_column=True))
            session.commit()

    with session_factory() as session:
        product = session.query(Product).filter_by(sku="SKU1").one()
        assert session.get(ImageVariant, product.primary_image_id).upload_id == b


def test_attach_image(session_factory, upload_image):
    upload_id = upload_image("a.png", width=400, height=300)
    product_id = _add_product(session_factory)

    with session_factory() as session:
        result = attach_image(session, product_id, upload_id)
        session.commit()

    assert result["changed"] is True
    assert result["image"]["variant"] == "1024"
    assert result["image"]["height"] == 768
    assert result["product"]["primary_image_id"] == result["image"]["id"]

    with session_factory() as session:
        again = attach_image(session, product_id, upload_id)
    assert again["changed"] is False


def test_attach_image_missing_product(session_factory, upload_image):
    upload_id = upload_image("a.png")

    with session_factory() as session:
        with pytest.raises(NotFoundError) as exc_info:
            attach_image(session, 999, upload_id)

    assert exc_info.value.message == "Product not found: 999"


def test_attach_image_missing_upload(session_factory):
    product_id = _add_product(session_factory)

    with session_factory() as session:
        with pytest.raises(NotFoundError):
            attach_image(session, product_id, 999)


def test_attach_image_pending_upload(session_factory, ledger):
    receipt = ledger.submit_chunk("abc", 0, 2, "pending.png", b"a")
    product_id = _add_product(session_factory)

    with session_factory() as session:
        with pytest.raises(UploadNotReadyError) as exc_info:
            attach_image(session, product_id, receipt.upload_id)

    assert exc_info.value.message == "Upload is not yet completed"
