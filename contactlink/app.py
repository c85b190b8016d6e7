import argparse
import json
import sys
from pathlib import Path

from . import __version__
from .audit import audit_clusters
from .database import get_session_factory, init_database
from .env import Settings, load_env
from .errors import Conflict, InvalidInput, ReconcileError
from .logger import get_logger
from .reconcile import Reconciler
from .schema import parse_request, validate_request
from .storage import ContactStore

logger = get_logger()

EXIT_STORE_ERROR = 1
EXIT_INVALID_INPUT = 2
EXIT_CONFLICT = 3


def _exit_code(error: ReconcileError) -> int:
    if isinstance(error, InvalidInput):
        return EXIT_INVALID_INPUT
    if isinstance(error, Conflict):
        return EXIT_CONFLICT
    return EXIT_STORE_ERROR


def build_reconciler(settings: Settings) -> Reconciler:
    engine = init_database(settings.database_url)
    return Reconciler(
        get_session_factory(engine),
        max_attempts=settings.max_attempts,
        base_delay=settings.retry_delay,
    )


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2))


def cmd_init_db(args: argparse.Namespace) -> None:
    init_database(args.settings.database_url)
    print(f"Initialized contact store at {args.settings.database_url}")


def cmd_identify(args: argparse.Namespace) -> None:
    reconciler = build_reconciler(args.settings)
    try:
        cluster = reconciler.reconcile(email=args.email, phone=args.phone)
    except ReconcileError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(_exit_code(e))
    _print_json(cluster.to_dict())


def cmd_identify_file(args: argparse.Namespace) -> None:
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")

    reconciler = build_reconciler(args.settings)
    total = ok = invalid = failed = 0
    with input_path.open("r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            total += 1
            try:
                data = json.loads(line)
            except json.JSONDecodeError as e:
                print(f"[invalid] line {line_no}: {e}")
                invalid += 1
                continue
            errors = validate_request(data)
            if errors:
                print(f"[invalid] line {line_no}: {'; '.join(errors)}")
                invalid += 1
                continue
            email, phone = parse_request(data)
            try:
                cluster = reconciler.reconcile(email=email, phone=phone)
            except ReconcileError as e:
                print(f"[error] line {line_no}: {e}")
                failed += 1
                continue
            ok += 1
            print(f"[ok] line {line_no} -> primary {cluster.primary_id}")
    print(f"Done. total={total} reconciled={ok} invalid={invalid} failed={failed}")
    logger.log_metrics_summary()
    if failed:
        raise SystemExit(EXIT_STORE_ERROR)


def cmd_validate(args: argparse.Namespace) -> None:
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    with input_path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    errors = validate_request(data)
    if errors:
        print("Invalid:")
        for e in errors:
            print(f" - {e}")
        raise SystemExit(EXIT_INVALID_INPUT)
    print("Valid")


def cmd_show(args: argparse.Namespace) -> None:
    reconciler = build_reconciler(args.settings)
    try:
        cluster = reconciler.lookup(args.id)
    except ReconcileError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(_exit_code(e))
    if cluster is None:
        raise SystemExit(f"Contact not found: {args.id}")
    _print_json(cluster.to_dict())


def cmd_audit(args: argparse.Namespace) -> None:
    engine = init_database(args.settings.database_url)
    with get_session_factory(engine)() as session:
        problems = audit_clusters(ContactStore(session))
    if not problems:
        print("All clusters are well formed.")
        return
    print(f"Found {len(problems)} problems:")
    for p in problems:
        print(f" - {p}")
    raise SystemExit(1)


def main(argv=None):
    # Load .env if present (CONTACTLINK_DATABASE_URL, CONTACTLINK_LOG_LEVEL, etc.)
    load_env()
    parser = argparse.ArgumentParser(prog="contactlink", description="Contact identity reconciliation CLI")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", help="Database URL or SQLite file path (overrides CONTACTLINK_DATABASE_URL)")

    subparsers = parser.add_subparsers(dest="command")
    init = subparsers.add_parser("init-db", help="Create the contacts table")
    init.set_defaults(func=cmd_init_db)

    ident = subparsers.add_parser("identify", help="Reconcile one email/phone observation and print its cluster")
    ident.add_argument("--email", help="Email address")
    ident.add_argument("--phone", help="Phone number (formatting characters are stripped)")
    ident.set_defaults(func=cmd_identify)

    identf = subparsers.add_parser("identify-file", help="Reconcile JSON-lines requests ({\"email\", \"phoneNumber\"}) in order")
    identf.add_argument("--input", required=True, help="Path to JSON-lines file")
    identf.set_defaults(func=cmd_identify_file)

    val = subparsers.add_parser("validate", help="Validate a request JSON body")
    val.add_argument("--input", required=True, help="Path to request JSON")
    val.set_defaults(func=cmd_validate)

    show = subparsers.add_parser("show", help="Show the cluster containing a contact id")
    show.add_argument("--id", type=int, required=True, help="Contact id")
    show.set_defaults(func=cmd_show)

    aud = subparsers.add_parser("audit", help="Check link invariants across all contacts")
    aud.set_defaults(func=cmd_audit)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    try:
        settings = Settings.from_env()
    except ValueError as e:
        raise SystemExit(f"Invalid configuration: {e}")
    if args.db:
        settings.database_url = args.db if "://" in args.db else f"sqlite:///{args.db}"
    logger.configure(level=settings.log_level, log_dir=settings.log_dir)
    args.settings = settings

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
