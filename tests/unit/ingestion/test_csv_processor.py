"""
Tests for the CSV import pipeline.
"""

from decimal import Decimal

import pytest

from catalog.db.models import Product, Upload
from catalog.ingestion.csv_processor import ProductImportPipeline
from catalog.models.errors import StructuralValidationError

from generate_test_csv import generate_test_csv


@pytest.fixture
def pipeline(session_factory):
    return ProductImportPipeline(session_factory, batch_size=1000)


def _products(session_factory):
    with session_factory() as session:
        return {p.sku: p for p in session.query(Product).all()}


def test_duplicate_sku_in_file(pipeline, write_csv, session_factory):
    path = write_csv("sku,name,price\nSKU001,Widget,19.99\nSKU001,Widget2,29.99\nSKU002,Gadget,9.99")

    summary = pipeline.import_file(path)

    assert summary.success
    assert summary.total_rows == 3
    assert summary.imported_count == 2
    assert summary.duplicate_count == 1
    assert summary.updated_count == 0
    assert summary.errors == ["Duplicate SKU in CSV: SKU001"]

    products = _products(session_factory)
    assert products["SKU001"].name == "Widget"
    assert products["SKU001"].price == Decimal("19.99")


def test_reimport_updates(pipeline, write_csv, session_factory):
    pipeline.import_file(write_csv("sku,name,price\nA,Old,1.00\nB,Other,2.00\n"))

    summary = pipeline.import_file(write_csv("sku,name,price\nA,New,3.50\nC,Third,4.00\n"))

    assert summary.imported_count == 1
    assert summary.updated_count == 1
    products = _products(session_factory)
    assert len(products) == 3
    assert products["A"].name == "New"
    assert products["A"].price == Decimal("3.50")


def test_import_is_idempotent(pipeline, write_csv, session_factory):
    path = write_csv("sku,name,price\nA,One,1\nB,Two,2\n")

    pipeline.import_file(path)
    summary = pipeline.import_file(path)

    assert summary.imported_count == 0
    assert summary.updated_count == 2
    assert len(_products(session_factory)) == 2


def test_invalid_rows_are_counted(pipeline, write_csv, session_factory):
    path = write_csv(
        "sku,name,price\n"
        "A,Good,10\n"
        "B,,5\n"
        "C,Bad price,-1\n"
        "D,Not a number,abc\n"
        "E,Free,0\n"
    )

    summary = pipeline.import_file(path)

    assert summary.total_rows == 5
    assert summary.imported_count == 2
    assert summary.invalid_count == 3
    assert summary.errors == [
        "Row 2: Required fields (sku, name, price) cannot be empty",
        "Row 3: Price must be a valid non-negative number",
        "Row 4: Price must be a valid non-negative number",
    ]
    assert set(_products(session_factory)) == {"A", "E"}


def test_short_and_long_rows(pipeline, write_csv, session_factory):
    path = write_csv("sku,name,price\nA,Short\nB,Long,5.00,extra\n")

    summary = pipeline.import_file(path)

    assert summary.invalid_count == 1
    assert summary.errors[0].startswith("Row 1: Missing required columns")
    assert summary.imported_count == 1
    assert _products(session_factory)["B"].price == Decimal("5.00")


def test_blank_line_is_an_invalid_row(pipeline, write_csv):
    summary = pipeline.import_file(write_csv("sku,name,price\nA,One,1\n\nB,Two,2\n"))

    assert summary.total_rows == 3
    assert summary.imported_count == 2
    assert summary.invalid_count == 1


def test_header_whitespace_is_trimmed(pipeline, write_csv, session_factory):
    summary = pipeline.import_file(write_csv(" sku , name ,price \nA,One,1\n"))

    assert summary.imported_count == 1
    assert "A" in _products(session_factory)


def test_column_order_does_not_matter(pipeline, write_csv, session_factory):
    summary = pipeline.import_file(write_csv("price,sku,name\n9.50,A,One\n"))

    assert summary.imported_count == 1
    assert _products(session_factory)["A"].price == Decimal("9.50")


def test_duplicates_across_batches(session_factory, write_csv):
    pipeline = ProductImportPipeline(session_factory, batch_size=2)
    path = write_csv("sku,name,price\nA,1,1\nB,2,2\nC,3,3\nA,4,4\nD,5,5\nB,6,6\n")

    summary = pipeline.import_file(path)

    assert summary.total_rows == 6
    assert summary.imported_count == 4
    assert summary.duplicate_count == 2
    assert _products(session_factory)["A"].name == "1"


def test_missing_required_column(pipeline, write_csv, session_factory):
    with pytest.raises(StructuralValidationError) as exc_info:
        pipeline.import_file(write_csv("sku,name\nA,One\n"))

    assert exc_info.value.errors == [
        "Missing required columns: price",
        "Found columns: sku, name",
    ]
    assert _products(session_factory) == {}


def test_empty_file(pipeline, write_csv):
    with pytest.raises(StructuralValidationError):
        pipeline.import_file(write_csv(""))


def test_file_too_large(session_factory, write_csv):
    pipeline = ProductImportPipeline(session_factory, max_bytes=10)

    with pytest.raises(StructuralValidationError) as exc_info:
        pipeline.import_file(write_csv("sku,name,price\nA,One,1\n"))

    assert exc_info.value.message.startswith("File too large")


def test_wrong_extension(pipeline, write_csv):
    path = write_csv("sku,name,price\nA,One,1\n", name="products.xlsx")

    with pytest.raises(StructuralValidationError):
        pipeline.import_file(path)


def test_client_filename_used_for_type_check(pipeline, write_csv):
    path = write_csv("sku,name,price\nA,One,1\n", name="spooled.tmp")

    summary = pipeline.import_file(path, filename="products.csv")
    assert summary.imported_count == 1


class _BrokenLinker:
    def __init__(self, fail_on_call):
        self.calls = 0
        self.fail_on_call = fail_on_call

    def link(self, session, image_links, run):
        self.calls += 1
        if self.calls == self.fail_on_call:
            raise RuntimeError("linker exploded")


def test_fatal_error_keeps_committed_batches(session_factory, write_csv):
    pipeline = ProductImportPipeline(session_factory, batch_size=1, linker=_BrokenLinker(2))
    path = write_csv("sku,name,price,image\nA,One,1,a.png\nB,Two,2,b.png\nC,Three,3,c.png\n")

    summary = pipeline.import_file(path)

    assert summary.success is False
    assert summary.errors[-1] == "Fatal error: linker exploded"
    assert summary.imported_count == 1
    assert set(_products(session_factory)) == {"A"}


def test_image_column_links_case_insensitive(pipeline, write_csv, upload_image, session_factory):
    upload_id = upload_image("Photo.png", width=200, height=100)
    path = write_csv("sku,name,price,image\nSKU1,Widget,5.00,photo.PNG\n")

    summary = pipeline.import_file(path)

    assert summary.images_linked == 1
    assert summary.images_not_found == 0
    with session_factory() as session:
        largest = session.get(Upload, upload_id).largest_variant()
        product = session.query(Product).filter_by(sku="SKU1").one()
        assert largest.variant == "1024"
        assert product.primary_image_id == largest.id

    again = pipeline.import_file(path)
    assert again.images_linked == 0
    assert again.updated_count == 1


def test_image_column_header_any_case(pipeline, write_csv, upload_image):
    upload_image("shoe.jpg")

    summary = pipeline.import_file(write_csv("sku,name,price,Image\nS,Shoe,1,shoe.jpg\n"))
    assert summary.images_linked == 1


def test_unresolved_image(pipeline, write_csv, session_factory):
    summary = pipeline.import_file(write_csv("sku,name,price,image\nSKU2,Thing,1,nothing.png\n"))

    assert summary.imported_count == 1
    assert summary.images_not_found == 1
    assert summary.errors == [
        "Image not found for SKU 'SKU2': nothing.png (upload not completed or doesn't exist)"
    ]
    assert _products(session_factory)["SKU2"].primary_image_id is None


def test_empty_image_cell_is_skipped(pipeline, write_csv):
    summary = pipeline.import_file(write_csv("sku,name,price,image\nA,One,1,\n"))

    assert summary.images_linked == 0
    assert summary.images_not_found == 0


def test_without_image_column_links_nothing(pipeline, write_csv, upload_image):
    upload_image("A")

    summary = pipeline.import_file(write_csv("sku,name,price\nA,One,1\n"))
    assert summary.images_linked == 0


def test_generated_file_in_many_batches(session_factory, tmp_path):
    path = tmp_path / "generated.csv"
    expected = generate_test_csv(num_rows=150, output_file=str(path), seed=7)
    pipeline = ProductImportPipeline(session_factory, batch_size=7)

    summary = pipeline.import_file(str(path))

    assert summary.success
    assert summary.total_rows == expected["total_rows"]
    assert summary.invalid_count == expected["invalid"]
    assert summary.duplicate_count == expected["duplicates"]
    assert summary.imported_count == expected["valid"]
    assert len(_products(session_factory)) == expected["valid"]


def test_missing_file(pipeline, tmp_path):
    with pytest.raises(StructuralValidationError) as exc_info:
        pipeline.import_file(str(tmp_path / "nope.csv"))

    assert exc_info.value.message == "File not found"


def test_directory_is_not_a_file(pipeline, tmp_path):
    with pytest.raises(StructuralValidationError) as exc_info:
        pipeline.import_file(str(tmp_path))

    assert exc_info.value.message == "File not found"
