"""Dossier assembly.

Walks the slot catalog in order and merges each slot's evidence into one PDF. Payload
decoding can run on a thread pool; pages are always appended on the calling thread in slot
order, so the output never depends on which decode finishes first.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
import io
import logging
import time
from typing import Mapping, Sequence

from pypdf import PdfWriter

from certigest.catalog import SlotDefinition
from certigest.sources import LoadedSource, PageLayout, SourceLoaderRegistry
from certigest.store import EvidenceRecord

logger = logging.getLogger("certigest.assembler")


@dataclass(frozen=True)
class SlotFailure:
    slot_id: str
    reason: str
    detail: str | None = None

    def as_dict(self) -> dict[str, object]:
        return {"slot_id": self.slot_id, "reason": self.reason, "detail": self.detail}


@dataclass(frozen=True)
class AssemblyResult:
    content: bytes = field(repr=False)
    merged_count: int
    page_count: int
    merged_slot_ids: list[str]
    failures: list[SlotFailure]

    def is_complete(self, total_slots: int) -> bool:
        return not self.failures and len(self.merged_slot_ids) == total_slots


class NothingMergeableError(RuntimeError):
    """Raised when no slot contributed a page; carries the per-slot failures seen on the way."""

    def __init__(self, failures: list[SlotFailure]) -> None:
        self.failures = failures
        super().__init__("No certificate could be merged into the dossier.")


def page_label(slot: SlotDefinition, entity_label: str) -> str:
    label = entity_label.strip()
    return f"{slot.name} - {label}" if label else slot.name


class DossierAssembler:
    def __init__(
        self,
        *,
        registry: SourceLoaderRegistry | None = None,
        layout: PageLayout | None = None,
        max_workers: int = 1,
    ) -> None:
        self._registry = registry or SourceLoaderRegistry(layout=layout)
        self._max_workers = max(1, int(max_workers))

    def _load(self, slot: SlotDefinition, record: EvidenceRecord, entity_label: str) -> LoadedSource:
        return self._registry.load(
            content=record.payload,
            file_name=record.file_name,
            label=page_label(slot, entity_label),
        )

    def _load_all(
        self,
        work: list[tuple[SlotDefinition, EvidenceRecord]],
        entity_label: str,
    ) -> list[LoadedSource]:
        if self._max_workers == 1 or len(work) < 2:
            return [self._load(slot, record, entity_label) for slot, record in work]
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(work))) as pool:
            futures = [pool.submit(self._load, slot, record, entity_label) for slot, record in work]
            return [future.result() for future in futures]

    def assemble(
        self,
        slots: Sequence[SlotDefinition],
        records: Mapping[str, EvidenceRecord],
        entity_label: str,
    ) -> AssemblyResult:
        if not slots:
            raise ValueError("At least one slot definition is required.")

        started = time.perf_counter()
        work = [(slot, records[slot.id]) for slot in slots if slot.id in records]
        loaded = self._load_all(work, entity_label)

        writer = PdfWriter()
        merged_count = 0
        merged_slot_ids: list[str] = []
        failures: list[SlotFailure] = []

        for (slot, record), source in zip(work, loaded):
            if not source.ok:
                failure = SlotFailure(slot_id=slot.id, reason=source.error or "no pages", detail=source.detail)
                failures.append(failure)
                logger.warning(
                    "dossier_slot_skipped",
                    extra={
                        "event": "dossier_slot_skipped",
                        "slot_id": slot.id,
                        "file_name": record.file_name,
                        "reason": failure.reason,
                        "detail": failure.detail,
                    },
                )
                continue
            for page in source.pages:
                writer.add_page(page)
                merged_count += 1
            merged_slot_ids.append(slot.id)

        if merged_count == 0:
            logger.warning(
                "dossier_nothing_mergeable",
                extra={
                    "event": "dossier_nothing_mergeable",
                    "records_present": len(work),
                    "failures": [failure.as_dict() for failure in failures],
                },
            )
            raise NothingMergeableError(failures)

        buffer = io.BytesIO()
        writer.write(buffer)
        content = buffer.getvalue()

        logger.info(
            "dossier_assembled",
            extra={
                "event": "dossier_assembled",
                "slots_total": len(slots),
                "records_present": len(work),
                "merged_slots": len(merged_slot_ids),
                "page_count": merged_count,
                "failure_count": len(failures),
                "size_bytes": len(content),
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return AssemblyResult(
            content=content,
            merged_count=merged_count,
            page_count=len(writer.pages),
            merged_slot_ids=merged_slot_ids,
            failures=failures,
        )


def assemble(
    slots: Sequence[SlotDefinition],
    records: Mapping[str, EvidenceRecord],
    entity_label: str,
    *,
    layout: PageLayout | None = None,
    max_workers: int = 1,
) -> AssemblyResult:
    return DossierAssembler(layout=layout, max_workers=max_workers).assemble(slots, records, entity_label)
