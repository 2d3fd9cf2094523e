"""Aaref CLI — command-line interface for the salary intake system.

Usage:
    python -m aaref.cli status
    python -m aaref.cli seed
    python -m aaref.cli submit --title "Backend Developer" --company Paymob --salary 32000
    python -m aaref.cli flag --id 5
    python -m aaref.cli moderate --id 24 --action approve
    python -m aaref.cli queue --view flagged
    python -m aaref.cli compare --industry Technology --experience "3-5 years" --salary 30000
    python -m aaref.cli check-invariants

Environment (a .env file at the repository root is loaded first):
    AAREF_DATA_DIR   directory for corpus.jsonl and events.jsonl (default: data/)
    AAREF_LOG_LEVEL  logging level name (default: WARNING)
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from aaref.identity.fingerprint import DeviceProfile, SubmitterSession
from aaref.logging_config import configure_logging
from aaref.models.record import (
    COMPANY_SIZES,
    CONTRACT_TYPES,
    RECENT_RAISE,
    SALARY_TYPES,
    ExperienceBand,
    Industry,
)
from aaref.moderation.queue import ReviewView
from aaref.persistence.corpus import Corpus
from aaref.persistence.event_log import EventLog
from aaref.policy.resolver import PolicyResolver
from aaref.service import AarefService, ServiceResult, load_seed_file


ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG = ROOT / "config"
DEFAULT_DATA = ROOT / "data"


def _data_dir() -> Path:
    return Path(os.environ.get("AAREF_DATA_DIR", str(DEFAULT_DATA)))


def _make_service(config_dir: Path) -> AarefService:
    """Create an AarefService with durable persistence."""
    data_dir = _data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    resolver = PolicyResolver.from_config_dir(config_dir)
    return AarefService(
        resolver,
        corpus=Corpus(storage_path=data_dir / "corpus.jsonl"),
        event_log=EventLog(storage_path=data_dir / "events.jsonl"),
    )


def _report(result: ServiceResult) -> int:
    if result.success:
        print(json.dumps(result.data, indent=2, default=str))
        return 0
    print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_seed(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    seed_path = args.file or (args.config / "seed_corpus.json")
    return _report(service.seed(load_seed_file(seed_path)))


def cmd_submit(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    profile = DeviceProfile.from_dict(json.loads(args.device)) if args.device else DeviceProfile(
        language=os.environ.get("LANG", ""),
    )
    candidate = {
        "title": args.title,
        "company": args.company,
        "salary": args.salary,
        "industry": args.industry,
        "city": args.city,
        "experience": args.experience,
        "salary_type": args.salary_type,
        "contract_type": args.contract_type,
        "recent_raise": args.recent_raise,
        "company_size": args.company_size,
    }
    return _report(service.submit(candidate, SubmitterSession(profile)))


def cmd_flag(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    return _report(service.flag_community(args.id))


def cmd_moderate(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    return _report(service.moderate(args.id, args.action))


def cmd_queue(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    records = service.review_queue(args.view)
    print(json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False))
    return 0


def cmd_compare(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    return _report(service.compare(args.industry, args.experience, args.salary))


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Run intake parameter invariant checks."""
    tools_dir = ROOT / "tools"
    sys.path.insert(0, str(tools_dir))
    from check_invariants import check
    return check(args.config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aaref",
        description="Aaref — anonymous salary intake CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help="Path to config directory (default: config/)",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("status", help="Show corpus and queue status")

    p_seed = sub.add_parser("seed", help="Load the seed corpus into an empty store")
    p_seed.add_argument("--file", type=Path, help="Seed JSON file (default: config/seed_corpus.json)")

    p_submit = sub.add_parser("submit", help="Submit a salary")
    p_submit.add_argument("--title", required=True, help="Job title")
    p_submit.add_argument("--company", required=True, help="Company")
    p_submit.add_argument("--salary", required=True, help="Monthly salary (EGP)")
    p_submit.add_argument(
        "--industry", default=Industry.TECHNOLOGY.value,
        choices=[i.value for i in Industry],
    )
    p_submit.add_argument("--city", default="Cairo")
    p_submit.add_argument(
        "--experience", default=ExperienceBand.BAND_3_5.value,
        choices=[b.value for b in ExperienceBand],
    )
    p_submit.add_argument("--salary-type", choices=SALARY_TYPES)
    p_submit.add_argument("--contract-type", choices=CONTRACT_TYPES)
    p_submit.add_argument("--recent-raise", choices=RECENT_RAISE)
    p_submit.add_argument("--company-size", choices=COMPANY_SIZES)
    p_submit.add_argument("--device", help="Device attributes as a JSON object")

    p_flag = sub.add_parser("flag", help="Community-flag a live record")
    p_flag.add_argument("--id", type=int, required=True, help="Record ID")

    p_mod = sub.add_parser("moderate", help="Moderator action on a record")
    p_mod.add_argument("--id", type=int, required=True, help="Record ID")
    p_mod.add_argument("--action", required=True, choices=["approve", "reject", "dismiss"])

    p_queue = sub.add_parser("queue", help="List the review queue")
    p_queue.add_argument(
        "--view", default=ReviewView.ALL.value,
        choices=[v.value for v in ReviewView],
    )

    p_cmp = sub.add_parser("compare", help="Compare a salary against public records")
    p_cmp.add_argument("--industry", required=True, choices=[i.value for i in Industry])
    p_cmp.add_argument("--experience", required=True, choices=[b.value for b in ExperienceBand])
    p_cmp.add_argument("--salary", required=True, help="Monthly salary (EGP)")

    sub.add_parser("check-invariants", help="Validate intake parameter invariants")

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv(ROOT / ".env")
    configure_logging(os.environ.get("AAREF_LOG_LEVEL", "WARNING"))

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "seed": cmd_seed,
        "submit": cmd_submit,
        "flag": cmd_flag,
        "moderate": cmd_moderate,
        "queue": cmd_queue,
        "compare": cmd_compare,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
