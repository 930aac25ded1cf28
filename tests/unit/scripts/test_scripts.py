"""
Tests for the command line scripts.
"""

import json

import pytest

from catalog.scripts import ingest_products, reprocess_upload

from conftest import make_png, sha256


@pytest.fixture
def cli_db(monkeypatch, session_factory):
    monkeypatch.setattr(ingest_products, "get_session_factory", lambda: session_factory)
    monkeypatch.setattr(ingest_products, "init_db", lambda: None)
    monkeypatch.setattr(reprocess_upload, "init_db", lambda: None)


def test_ingest_products_json(cli_db, write_csv, capsys):
    path = write_csv("sku,name,price\nA,One,1\nA,Two,2\n")

    assert ingest_products.main([path, "--json", "--batch-size", "1"]) == 0

    output = json.loads(capsys.readouterr().out)
    assert output["success"] is True
    assert output["data"]["imported_count"] == 1
    assert output["data"]["duplicate_count"] == 1


def test_ingest_products_structural_error(cli_db, write_csv):
    assert ingest_products.main([write_csv("sku\nA\n")]) == 2


def test_ingest_products_missing_file(cli_db, tmp_path):
    assert ingest_products.main([str(tmp_path / "missing.csv")]) == 1


def test_reprocess_upload(cli_db, monkeypatch, ledger, processor):
    monkeypatch.setattr(reprocess_upload, "default_processor", lambda: processor)
    data = make_png(50, 50)
    receipt = ledger.submit_chunk(sha256(data), 0, 1, "a.png", data)

    assert reprocess_upload.main([str(receipt.upload_id)]) == 0
    assert reprocess_upload.main([str(receipt.upload_id), "999"]) == 1
