import argparse
import json
import signal
import threading
from typing import Optional

from .env import load_env

from . import __version__
from .audit import audit_declarations
from .config import Settings
from .database import init_database, session_scope
from .logger import get_logger
from .normalize import normalize_declaration
from .prober import Prober
from .reconcile import MediaReconciler
from .repair import default_strategies
from .schema import WeightVector, validate_weights
from .scoring import compose_score, rank_candidates
from .storage import CandidateStore

logger = get_logger()


def _parse_weights(text: Optional[str]) -> Optional[WeightVector]:
    if not text:
        return None
    try:
        return WeightVector.parse(text)
    except ValueError as e:
        raise SystemExit(f"Invalid --weights: {e}")


def _warn_weights(weights: Optional[WeightVector], with_plan: bool) -> None:
    if weights is None:
        return
    for warning in validate_weights(weights, with_plan=with_plan):
        print(f"[warn] {warning}")


def cmd_init_db(args: argparse.Namespace, settings: Settings) -> None:
    init_database(settings.database_url)
    print(f"Initialized {settings.database_url}")


def cmd_reconcile_media(args: argparse.Namespace, settings: Settings) -> None:
    cancel_event = threading.Event()

    def _request_stop(signum, frame):
        if cancel_event.is_set():
            raise KeyboardInterrupt
        print("\nStop requested; finishing the current batch (press Ctrl+C again to abort).")
        cancel_event.set()

    previous = signal.signal(signal.SIGINT, _request_stop)
    try:
        with session_scope(settings.database_url) as session, Prober(
            timeout=settings.probe_timeout,
            retries=settings.probe_retries,
            pool_size=settings.batch_size,
        ) as prober:
            reconciler = MediaReconciler(
                store=CandidateStore(session),
                prober=prober,
                strategies=default_strategies(settings.national_id_template, settings.token_template),
                batch_size=settings.batch_size,
                batch_delay=settings.batch_delay,
                dry_run=args.dry_run,
                cancel_event=cancel_event,
            )
            stats = reconciler.run(party_id=args.party, active_only=not args.include_inactive)
    finally:
        signal.signal(signal.SIGINT, previous)

    prefix = "[dry-run] " if stats.dry_run else ""
    print(f"{prefix}Checked: {stats.checked} | Broken: {stats.broken} | Nulled: {stats.nulled}")
    for strategy, count in stats.repaired_by_strategy.items():
        print(f"{prefix}Repaired via {strategy}: {count}")
    if stats.write_failures or stats.probe_errors:
        print(f"{prefix}Write failures: {stats.write_failures} | Probe errors: {stats.probe_errors}")
    if stats.cancelled:
        print("Run cancelled before completion.")


def cmd_audit_declarations(args: argparse.Namespace, settings: Settings) -> None:
    with session_scope(settings.database_url) as session:
        stats = audit_declarations(CandidateStore(session).iter_declarations())

    if args.json:
        print(json.dumps(stats.to_dict(), indent=2))
        return
    print(f"Declarations: {stats.total}")
    print(f"  Normalized:        {stats.normalized}")
    print(f"  No data:           {stats.no_data}")
    print(f"  With assets:       {stats.with_assets}")
    print(f"  With income:       {stats.with_income} ({stats.with_income_breakdown} with sector breakdown)")
    print(f"  With liabilities:  {stats.with_liabilities}")
    print(f"  With year:         {stats.with_year}")
    print(f"  Raw negatives:     {stats.raw_negative_values} (clamped)")
    print(f"  Shapes:            {json.dumps(stats.shapes)}")
    if stats.negative_after_normalization:
        raise SystemExit(f"{stats.negative_after_normalization} declarations still hold negative amounts")


def cmd_show_declaration(args: argparse.Namespace, settings: Settings) -> None:
    with session_scope(settings.database_url) as session:
        raw = CandidateStore(session).get_declaration(args.candidate)
    declaration = normalize_declaration(raw)
    if declaration is None:
        print("No declaration.")
        return
    print(json.dumps(declaration.to_dict(), indent=2, ensure_ascii=False))


def cmd_score(args: argparse.Namespace, settings: Settings) -> None:
    weights = _parse_weights(args.weights)
    with session_scope(settings.database_url) as session:
        scores = CandidateStore(session).get_score(args.candidate)
    if scores is None:
        raise SystemExit(f"No scores for candidate: {args.candidate}")
    _warn_weights(weights, with_plan=scores.plan_viability is not None)
    print(round(compose_score(scores, args.mode, weights), 2))


def cmd_rank(args: argparse.Namespace, settings: Settings) -> None:
    weights = _parse_weights(args.weights)
    _warn_weights(weights, with_plan=False)
    with session_scope(settings.database_url) as session:
        entries = CandidateStore(session).list_scores(cargo=args.cargo, party_id=args.party)
    ranking = rank_candidates(entries, args.mode, weights)
    if args.limit is not None:
        ranking = ranking[:args.limit]
    if not ranking:
        print("No scored candidates.")
        return
    for position, (candidate_id, score) in enumerate(ranking, start=1):
        print(f"{position:>3}. {candidate_id}  {score:.2f}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="votorank", description="Candidate ranking integrity tools")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", help="SQLAlchemy URL or SQLite path (default: $VOTORANK_DATABASE_URL)")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR (default: $VOTORANK_LOG_LEVEL or INFO)")

    subparsers = parser.add_subparsers(dest="command")

    ini = subparsers.add_parser("init-db", help="Create the candidate and score tables")
    ini.set_defaults(func=cmd_init_db)

    rec = subparsers.add_parser("reconcile-media", help="Verify photo URLs and repair or clear broken ones")
    rec.add_argument("--party", help="Only candidates of this party id")
    rec.add_argument("--include-inactive", action="store_true", help="Also check inactive candidates")
    rec.add_argument("--batch-size", type=int, help="Concurrent probes per batch (default 30)")
    rec.add_argument("--batch-delay", type=float, help="Seconds to pause between batches")
    rec.add_argument("--timeout", type=float, help="Per-probe timeout in seconds (default 10)")
    rec.add_argument("--dry-run", action="store_true", help="Probe and report without writing")
    rec.set_defaults(func=cmd_reconcile_media)

    aud = subparsers.add_parser("audit-declarations", help="Normalize every declaration and report statistics (no writes)")
    aud.add_argument("--json", action="store_true", help="Print statistics as JSON")
    aud.set_defaults(func=cmd_audit_declarations)

    shw = subparsers.add_parser("show-declaration", help="Print a candidate's canonical declaration")
    shw.add_argument("--candidate", required=True, help="Candidate id")
    shw.set_defaults(func=cmd_show_declaration)

    scr = subparsers.add_parser("score", help="Composite score for one candidate")
    scr.add_argument("--candidate", required=True, help="Candidate id")
    scr.add_argument("--mode", default="balanced", help="balanced, merit, integrity or custom")
    scr.add_argument("--weights", help="Custom weights: wC,wI,wT[,wP]")
    scr.set_defaults(func=cmd_score)

    rnk = subparsers.add_parser("rank", help="List candidates by composite score")
    rnk.add_argument("--mode", default="balanced", help="balanced, merit, integrity or custom")
    rnk.add_argument("--weights", help="Custom weights: wC,wI,wT[,wP]")
    rnk.add_argument("--cargo", help="Only candidates running for this office")
    rnk.add_argument("--party", help="Only candidates of this party id")
    rnk.add_argument("--limit", type=int, help="Show at most N candidates")
    rnk.set_defaults(func=cmd_rank)

    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Environment settings with CLI flags layered on top."""
    try:
        settings = Settings.from_env()
        if args.db:
            settings.database_url = args.db
        if args.log_level:
            settings.log_level = args.log_level
        for flag, attr in (
            ("batch_size", "batch_size"),
            ("batch_delay", "batch_delay"),
            ("timeout", "probe_timeout"),
        ):
            value = getattr(args, flag, None)
            if value is not None:
                setattr(settings, attr, value)
        settings.__post_init__()
    except ValueError as e:
        raise SystemExit(f"Invalid configuration: {e}")
    return settings


def main(argv=None):
    # Load .env if present (VOTORANK_DATABASE_URL, probe settings, ...)
    load_env()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        return

    settings = settings_from_args(args)
    logger.set_level(settings.log_level)
    args.func(args, settings)


if __name__ == "__main__":
    main()
