from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from certigest.catalog import CERTIFICATE_SLOTS, SlotDefinition
from certigest.formatting import cnpj_digits, format_cnpj
from certigest.store import Entity, EvidenceRecord, RecordStore

ISSUED = "issued"
PENDING = "pending"
_CHART_NAME_LIMIT = 15


@dataclass(frozen=True)
class Progress:
    total: int
    completed: int

    @property
    def pending(self) -> int:
        return self.total - self.completed

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.completed / self.total * 100)

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "completed": self.completed,
            "pending": self.pending,
            "percentage": self.percentage,
        }


def serialize_entity(entity: Entity) -> dict[str, object]:
    return {
        "id": entity.id,
        "name": entity.name,
        "cnpj": entity.cnpj,
        "cnpj_formatted": format_cnpj(entity.cnpj),
        "created_at": entity.created_at,
    }


def serialize_record_metadata(record: EvidenceRecord) -> dict[str, object]:
    return {
        "id": record.id,
        "file_name": record.file_name,
        "issued_at": record.issued_at,
        "size_bytes": record.size_bytes,
    }


def entity_checklist(
    records: Mapping[str, EvidenceRecord],
    slots: Sequence[SlotDefinition] = CERTIFICATE_SLOTS,
) -> dict[str, object]:
    items: list[dict[str, object]] = []
    completed = 0
    for position, slot in enumerate(slots, start=1):
        record = records.get(slot.id)
        if record is not None:
            completed += 1
        items.append(
            {
                "slot_id": slot.id,
                "position": position,
                "name": slot.name,
                "category": slot.category.value,
                "status": ISSUED if record is not None else PENDING,
                "record": serialize_record_metadata(record) if record is not None else None,
            }
        )
    return {
        "certificates": items,
        "progress": Progress(total=len(slots), completed=completed).as_dict(),
    }


def search_entities(entities: Sequence[Entity], term: str | None) -> list[Entity]:
    needle = (term or "").strip()
    if not needle:
        return list(entities)
    lowered = needle.lower()
    digits = cnpj_digits(needle)
    return [
        entity
        for entity in entities
        if lowered in entity.name.lower() or (digits and digits in entity.cnpj)
    ]


def _chart_name(name: str) -> str:
    if len(name) > _CHART_NAME_LIMIT:
        return f"{name[:_CHART_NAME_LIMIT]}..."
    return name


def build_dashboard(
    store: RecordStore,
    cycle: str,
    slots: Sequence[SlotDefinition] = CERTIFICATE_SLOTS,
) -> dict[str, object]:
    entities = store.list_entities()
    counts = store.count_records_by_entity(cycle, [slot.id for slot in slots])
    per_slot_total = len(slots)

    rows: list[dict[str, object]] = []
    completed_total = 0
    for entity in entities:
        completed = counts.get(entity.id, 0)
        completed_total += completed
        progress = Progress(total=per_slot_total, completed=completed)
        rows.append(
            {
                "entity_id": entity.id,
                "name": entity.name,
                "chart_name": _chart_name(entity.name),
                "completed": progress.completed,
                "pending": progress.pending,
                "full_completion": progress.completed == progress.total,
            }
        )

    overall = Progress(total=len(entities) * per_slot_total, completed=completed_total)
    return {
        "cycle": cycle,
        "total_entities": len(entities),
        "total_certificates_in_cycle": overall.total,
        "completed_certificates": overall.completed,
        "pending_certificates": overall.pending,
        "compliance_percentage": overall.percentage,
        "entities": rows,
    }
