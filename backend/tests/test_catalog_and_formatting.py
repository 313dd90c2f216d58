from __future__ import annotations

from datetime import date

import pytest

from certigest.catalog import (
    CATALOG_VERSION,
    CERTIFICATE_SLOTS,
    describe_acquisition,
    get_slot,
    serialize_catalog,
)
from certigest.formatting import (
    InvalidCycleError,
    current_cycle,
    dossier_file_name,
    format_cnpj,
    format_cycle_display,
    normalize_cycle,
)


def test_catalog_order_and_ids_are_stable() -> None:
    ids = [slot.id for slot in CERTIFICATE_SLOTS]

    assert len(ids) == 13
    assert len(set(ids)) == len(ids)
    assert ids[0] == "situacao-cadastral-cnpj"
    assert ids[-1] == "ficha-dados-ccm"
    assert ids.index("crf-fgts") < ids.index("cndt-trabalhista") < ids.index("cadesp")


def test_serialized_catalog_carries_version_and_positions() -> None:
    payload = serialize_catalog()

    assert payload["version"] == CATALOG_VERSION
    slots = payload["slots"]
    assert [slot["position"] for slot in slots] == list(range(1, 14))
    assert slots[1]["name"] == "CRF do FGTS"
    assert slots[1]["category"] == "Federal"


def test_acquisition_hint_copies_cnpj_digits_by_default() -> None:
    hint = describe_acquisition(get_slot("crf-fgts"), legal_name="Acme", cnpj="12.345.678/0001-95")

    assert hint["copy"] == {"field": "cnpj", "value": "12345678000195"}
    assert hint["secondary_copy"] is None
    assert hint["url"].startswith("https://")


def test_acquisition_hint_special_cases() -> None:
    base = describe_acquisition(get_slot("divida-ativa-estadual-sp"), legal_name="Acme", cnpj="12345678000195")
    assert base["copy"] == {"field": "cnpj_base", "value": "12345678"}

    bankruptcy = describe_acquisition(
        get_slot("falencia-concordata-tjsp"), legal_name=" Acme Ltda ", cnpj="12.345.678/0001-95"
    )
    assert bankruptcy["copy"] == {"field": "legal_name", "value": "Acme Ltda"}
    assert bankruptcy["secondary_copy"] == {"field": "cnpj", "value": "12345678000195"}


def test_unknown_slot_lookup_returns_none() -> None:
    assert get_slot("does-not-exist") is None


@pytest.mark.parametrize("value", ["2025-00", "2025-13", "25-03", "2025/03", "", "2025-3"])
def test_invalid_cycles_are_rejected(value: str) -> None:
    with pytest.raises(InvalidCycleError):
        normalize_cycle(value)


def test_cycle_helpers() -> None:
    assert normalize_cycle(" 2025-03 ") == "2025-03"
    assert current_cycle(date(2026, 1, 31)) == "2026-01"
    assert format_cycle_display("2025-11") == "11/2025"


def test_cnpj_formatting_handles_partial_input() -> None:
    assert format_cnpj("12345678000195") == "12.345.678/0001-95"
    assert format_cnpj("12.345") == "12.345"
    assert format_cnpj("123456789") == "12.345.678/9"


def test_dossier_file_name_replaces_whitespace_runs() -> None:
    assert dossier_file_name("Acme  Comércio\tLtda", "2025-03") == "Dossie_Acme_Comércio_Ltda_2025-03.pdf"


def test_dossier_file_name_keeps_legal_names_with_slashes_whole() -> None:
    assert dossier_file_name("Construtora Alfa S/A", "2025-03") == "Dossie_Construtora_Alfa_S-A_2025-03.pdf"
    assert dossier_file_name("Beta\\Gama Ltda", "2025-03") == "Dossie_Beta-Gama_Ltda_2025-03.pdf"
