"""Command line access to the catalog and to dossier assembly.

    python -m certigest.cli catalog
    python -m certigest.cli assemble --entity-id <id> --cycle 2025-03 [--output-dir exports/]
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from certigest.assembler import NothingMergeableError
from certigest.catalog import serialize_catalog
from certigest.config import settings
from certigest.dossier import assembler_from_settings, build_dossier
from certigest.export import ExportSinkError, LocalDirectorySink
from certigest.formatting import InvalidCycleError, normalize_cycle
from certigest.observability import configure_logging
from certigest.store import RecordStore

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_NOTHING_MERGEABLE = 2


def _print_json(payload: object) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _run_catalog(_: argparse.Namespace) -> int:
    _print_json(serialize_catalog())
    return EXIT_OK


def _run_assemble(args: argparse.Namespace) -> int:
    try:
        cycle = normalize_cycle(args.cycle)
    except InvalidCycleError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_USAGE

    output_dir = Path(args.output_dir) if args.output_dir else Path(settings.export_root)
    with RecordStore(args.database_url or settings.database_url) as store:
        entity = store.get_entity(args.entity_id)
        if entity is None:
            print(f"ERROR: entity '{args.entity_id}' not found", file=sys.stderr)
            return EXIT_USAGE
        try:
            outcome = build_dossier(
                store=store,
                entity=entity,
                cycle=cycle,
                sink=LocalDirectorySink(output_dir),
                assembler=assembler_from_settings(settings),
            )
        except NothingMergeableError as exc:
            _print_json(
                {
                    "error": "nothing_mergeable",
                    "failures": [failure.as_dict() for failure in exc.failures],
                }
            )
            return EXIT_NOTHING_MERGEABLE
        except ExportSinkError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return EXIT_USAGE

    _print_json({"entity_id": entity.id, "cycle": cycle, **outcome.summary()})
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="certigest", description="Certificate dossier tooling.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    catalog_parser = subparsers.add_parser("catalog", help="Print the certificate slot catalog as JSON.")
    catalog_parser.set_defaults(handler=_run_catalog)

    assemble_parser = subparsers.add_parser("assemble", help="Assemble one entity's dossier for a cycle.")
    assemble_parser.add_argument("--entity-id", required=True)
    assemble_parser.add_argument("--cycle", required=True, help="Cycle in YYYY-MM format.")
    assemble_parser.add_argument("--output-dir", default=None, help="Defaults to EXPORT_ROOT.")
    assemble_parser.add_argument("--database-url", default=None, help="Defaults to DATABASE_URL.")
    assemble_parser.set_defaults(handler=_run_assemble)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.log_level)
    return int(args.handler(args))


if __name__ == "__main__":
    sys.exit(main())
