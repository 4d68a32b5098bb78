"""mindcontext ledger diagnostics CLI."""

from __future__ import annotations

import argparse
import json

from mindcontext.config import ConfigStore, MindcontextSettings, get_settings
from mindcontext.ledger import UpdateLedger, latest_by_machine


def load_ledger(settings: MindcontextSettings, project: str) -> UpdateLedger:
    if not ConfigStore(settings).is_initialized():
        print(f"mindcontext is not initialized at {settings.home}")
        raise SystemExit(1)
    ledger = UpdateLedger(settings.updates_dir(project))
    if not ledger.path.is_dir():
        print(f"No ledger for project {project!r} at {ledger.path}")
        raise SystemExit(1)
    return ledger


def cmd_records(args: argparse.Namespace) -> None:
    ledger = load_ledger(get_settings(), args.project)
    records = ledger.read_all()
    if args.json:
        print(json.dumps([record.model_dump(by_alias=True, exclude_none=True) for record in records], indent=2))
    else:
        for record in records:
            print(f"{record.timestamp} {record.machine} [{record.machine_id}] {record.context.status}")


def cmd_machines(args: argparse.Namespace) -> None:
    ledger = load_ledger(get_settings(), args.project)
    latest = latest_by_machine(ledger.read_all())
    payload = [
        {
            "machine_id": machine_id,
            "machine": record.machine,
            "timestamp": record.timestamp,
            "status": record.context.status,
        }
        for machine_id, record in latest.items()
    ]
    payload.sort(key=lambda item: item["timestamp"], reverse=True)
    print(json.dumps(payload, indent=2))


def cmd_skipped(args: argparse.Namespace) -> None:
    ledger = load_ledger(get_settings(), args.project)
    records = ledger.read_all()
    print(
        json.dumps(
            {
                "project": args.project,
                "records": len(records),
                "skipped": sorted(path.name for path in ledger.skipped),
            },
            indent=2,
        )
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="mindcontext ledger diagnostics")
    sub = parser.add_subparsers(dest="cmd")

    p_records = sub.add_parser("records", help="List update records for a project")
    p_records.add_argument("project")
    p_records.add_argument("--json", action="store_true", help="Output JSON")
    p_records.set_defaults(func=cmd_records)

    p_machines = sub.add_parser("machines", help="Show the latest record per machine")
    p_machines.add_argument("project")
    p_machines.set_defaults(func=cmd_machines)

    p_skipped = sub.add_parser("skipped", help="List update files that failed to parse")
    p_skipped.add_argument("project")
    p_skipped.set_defaults(func=cmd_skipped)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
