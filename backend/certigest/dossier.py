from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from certigest.assembler import AssemblyResult, DossierAssembler
from certigest.catalog import CERTIFICATE_SLOTS, SlotDefinition
from certigest.config import Settings
from certigest.export import Delivery, ExportSink
from certigest.formatting import dossier_file_name, normalize_cycle
from certigest.sources import PageLayout
from certigest.store import Entity, RecordStore


@dataclass(frozen=True)
class DossierOutcome:
    result: AssemblyResult
    delivery: Delivery
    total_slots: int

    @property
    def incomplete(self) -> bool:
        return not self.result.is_complete(self.total_slots)

    def summary(self) -> dict[str, object]:
        return {
            "file_name": self.delivery.file_name,
            "location": self.delivery.location,
            "size_bytes": self.delivery.size_bytes,
            "merged_count": self.result.merged_count,
            "page_count": self.result.page_count,
            "merged_slot_ids": list(self.result.merged_slot_ids),
            "failures": [failure.as_dict() for failure in self.result.failures],
            "total_slots": self.total_slots,
            "incomplete": self.incomplete,
        }


def page_layout_from_settings(settings: Settings) -> PageLayout:
    return PageLayout(
        width=settings.dossier_page_width,
        height=settings.dossier_page_height,
        margin=settings.dossier_image_margin,
        label_font_size=settings.dossier_label_font_size,
        label_offset=settings.dossier_label_offset,
    )


def assembler_from_settings(settings: Settings) -> DossierAssembler:
    return DossierAssembler(
        layout=page_layout_from_settings(settings),
        max_workers=settings.assembly_workers,
    )


def build_dossier(
    *,
    store: RecordStore,
    entity: Entity,
    cycle: str,
    sink: ExportSink,
    assembler: DossierAssembler,
    slots: Sequence[SlotDefinition] = CERTIFICATE_SLOTS,
) -> DossierOutcome:
    """Assemble one entity's dossier for ``cycle`` and hand it to ``sink``.

    Records are read once up front; uploads landing while the merge runs are not included.
    Raises ``NothingMergeableError`` when no slot produced a page.
    """
    normalized_cycle = normalize_cycle(cycle)
    records = store.get_records(entity.id, normalized_cycle)
    result = assembler.assemble(slots, records, entity.name)
    delivery = sink.deliver(result.content, dossier_file_name(entity.name, normalized_cycle))
    return DossierOutcome(result=result, delivery=delivery, total_slots=len(slots))
