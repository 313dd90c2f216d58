from __future__ import annotations

from pathlib import Path

import pytest

from certigest.formatting import InvalidCnpjError, InvalidCycleError
from certigest.store import (
    DuplicateEntityError,
    RecordStore,
    StoreError,
    new_evidence_record,
)


def test_create_and_fetch_entity_normalizes_cnpj(store: RecordStore) -> None:
    entity = store.create_entity(name="  Acme Comércio Ltda ", cnpj="12.345.678/0001-95")

    assert entity.cnpj == "12345678000195"
    assert entity.name == "Acme Comércio Ltda"
    assert store.get_entity(entity.id) == entity
    assert store.get_entity("missing") is None


def test_duplicate_cnpj_is_rejected(store: RecordStore) -> None:
    store.create_entity(name="First", cnpj="12345678000195")

    with pytest.raises(DuplicateEntityError):
        store.create_entity(name="Second", cnpj="12.345.678/0001-95")
    assert len(store.list_entities()) == 1


def test_invalid_cnpj_is_rejected(store: RecordStore) -> None:
    with pytest.raises(InvalidCnpjError):
        store.create_entity(name="Short", cnpj="123")


def test_put_record_replaces_same_entity_slot_cycle(store: RecordStore) -> None:
    entity = store.create_entity(name="Acme", cnpj="12345678000195")
    store.put_record(
        new_evidence_record(entity_id=entity.id, slot_id="crf-fgts", cycle="2025-03", file_name="old.pdf", payload=b"old")
    )
    newest = store.put_record(
        new_evidence_record(entity_id=entity.id, slot_id="crf-fgts", cycle="2025-03", file_name="new.png", payload=b"new")
    )

    records = store.get_records(entity.id, "2025-03")

    assert list(records) == ["crf-fgts"]
    assert records["crf-fgts"].id == newest.id
    assert records["crf-fgts"].payload == b"new"
    assert records["crf-fgts"].file_name == "new.png"


def test_records_are_scoped_by_entity_and_cycle(store: RecordStore) -> None:
    acme = store.create_entity(name="Acme", cnpj="12345678000195")
    beta = store.create_entity(name="Beta", cnpj="98765432000110")
    for entity_id, slot_id, cycle in [
        (acme.id, "crf-fgts", "2025-03"),
        (acme.id, "cadesp", "2025-03"),
        (acme.id, "crf-fgts", "2025-04"),
        (beta.id, "crf-fgts", "2025-03"),
    ]:
        store.put_record(
            new_evidence_record(entity_id=entity_id, slot_id=slot_id, cycle=cycle, file_name="f.pdf", payload=b"x")
        )

    assert sorted(store.get_records(acme.id, "2025-03")) == ["cadesp", "crf-fgts"]
    assert list(store.get_records(acme.id, "2025-04")) == ["crf-fgts"]
    assert store.get_records(beta.id, "2025-05") == {}
    assert store.list_cycles(acme.id) == ["2025-04", "2025-03"]
    assert store.count_records_by_entity("2025-03") == {acme.id: 2, beta.id: 1}
    assert store.count_records_by_entity("2025-03", ["cadesp"]) == {acme.id: 1}


def test_delete_entity_removes_its_records(store: RecordStore) -> None:
    entity = store.create_entity(name="Acme", cnpj="12345678000195")
    store.put_record(
        new_evidence_record(entity_id=entity.id, slot_id="cadesp", cycle="2025-03", file_name="f.pdf", payload=b"x")
    )

    assert store.delete_entity(entity.id) is True
    assert store.get_entity(entity.id) is None
    assert store.get_records(entity.id, "2025-03") == {}
    assert store.delete_entity(entity.id) is False


def test_new_evidence_record_strips_directories_and_validates_cycle() -> None:
    record = new_evidence_record(
        entity_id="e", slot_id="s", cycle="2025-12", file_name="../../etc/certidao.pdf", payload=bytearray(b"abc")
    )

    assert record.file_name == "certidao.pdf"
    assert record.payload == b"abc"
    assert record.size_bytes == 3

    with pytest.raises(InvalidCycleError):
        new_evidence_record(entity_id="e", slot_id="s", cycle="2025-13", file_name="x.pdf", payload=b"")


def test_store_must_be_opened_before_use(tmp_path: Path) -> None:
    record_store = RecordStore(f"sqlite:///{tmp_path}/closed.db")

    with pytest.raises(StoreError):
        record_store.list_entities()

    with record_store:
        assert record_store.is_open
        assert record_store.list_entities() == []
    assert not record_store.is_open


def test_store_data_survives_reopen(tmp_path: Path) -> None:
    url = f"sqlite:///{tmp_path}/nested/dir/records.db"
    with RecordStore(url) as first:
        entity = first.create_entity(name="Acme", cnpj="12345678000195")

    with RecordStore(url) as second:
        assert second.get_entity(entity.id) == entity


def test_only_sqlite_urls_are_supported() -> None:
    with pytest.raises(StoreError):
        RecordStore("postgresql://localhost/certigest")
