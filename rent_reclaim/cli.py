"""Command line entry point.

  rent-reclaim scan <wallet>
  rent-reclaim clean <wallet> [--keypair PATH] [--yes] [--dry-run]

Defaults to asking before any transaction is sent. Use --dry-run to see what
would be closed without touching the network beyond the read-only scan.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from .config import LAMPORTS_PER_SOL, ReclaimConfig
from .errors import ReclaimError
from .keys import load_keypair
from .models import BatchOutcome, Classification, RunReport, RunState
from .orchestrator import ReclamationOrchestrator


# ---------------- Formatting ----------------
def fmt_sol(lamports: int) -> str:
    return f"{lamports / LAMPORTS_PER_SOL:.9f}".rstrip("0").rstrip(".") or "0"


def _rule(ch: str = "-") -> None:
    print(ch * 80)


def print_scan(wallet: str, classification: Classification) -> None:
    closeable = classification.closeable
    _rule()
    print("DUST SCAN RESULTS")
    print(f"Wallet:               {wallet}")
    print(f"Total token accounts: {classification.total_scanned}")
    print(f"Closeable (empty):    {len(closeable)}")
    print(f"With balance:         {len(classification.non_closeable)}")
    if not closeable:
        print("No empty token accounts found.")
        return
    print(f"Recoverable SOL:      ~{classification.estimated_recoverable_sol:.6f} SOL (estimate)")
    print(f"Held by accounts:     {fmt_sol(classification.observed_closeable_lamports)} SOL")
    _rule()
    for i, acc in enumerate(closeable, start=1):
        print(f"{i:>4}. {acc.address}  mint={acc.mint}  state={acc.state}")
    _rule()
    print(f"Run 'rent-reclaim clean {wallet} --keypair <path>' to recover SOL")


def print_outcome(outcome: BatchOutcome) -> None:
    n = len(outcome.batch)
    if outcome.succeeded:
        print(f"  batch {outcome.batch.index + 1}: closed {n} accounts, sig: {outcome.signature}")
    else:
        print(f"  batch {outcome.batch.index + 1}: FAILED ({outcome.error_type}) {outcome.error}")


def print_report(report: RunReport) -> None:
    _rule()
    if report.total_closeable == 0:
        print("No empty token accounts to close.")
        return
    print("DUST CLEAN SUMMARY")
    print(f"Accounts to close:  {report.total_closeable}")
    print(f"SOL to recover:     ~{report.estimated_recoverable_sol:.6f} SOL (estimate)")

    if report.dry_run:
        print("[DRY RUN] No transactions were sent. Accounts that would be closed:")
        for i, acc in enumerate(report.closeable, start=1):
            print(f"{i:>4}. {acc.address}")
        return
    if report.state is RunState.ABORTED:
        print("Aborted.")
        return

    print("=" * 30)
    print(f"Accounts closed:    {report.total_closed}")
    print(f"SOL recovered:      {fmt_sol(report.total_recovered_lamports)} SOL")
    failed = report.failed_outcomes
    if failed:
        print(f"Failed batches:     {len(failed)}")
        for outcome in failed:
            print(f"  batch {outcome.batch.index + 1} ({len(outcome.batch)} accounts): {outcome.error}")


def prompt_confirmation(report: RunReport) -> bool:
    print(f"This will close {report.total_closeable} token accounts.", file=sys.stderr)
    print("Make sure you have backed up your wallet. Use --yes to skip this prompt.", file=sys.stderr)
    print("Proceed? (y/N): ", end="", file=sys.stderr, flush=True)
    try:
        answer = input()
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


# ---------------- Main ----------------
def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="rent-reclaim",
        description="Close empty SPL token accounts and recover their rent deposit.",
    )
    ap.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO logs, -vv for DEBUG")
    ap.add_argument("--rpc-url", default=None, help="RPC URL override (default: RPC_URL/SOLANA_URL/HELIUS_API_KEY)")
    ap.add_argument("--json", action="store_true", help="Print the result as JSON")
    sub = ap.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Scan a wallet for empty token accounts (read-only)")
    scan.add_argument("wallet", help="Wallet address to scan")

    clean = sub.add_parser("clean", help="Close empty token accounts and recover SOL")
    clean.add_argument("wallet", help="Wallet address to clean")
    clean.add_argument("-k", "--keypair", default=None, help="Path to keypair file (JSON array or base58)")
    clean.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompt")
    clean.add_argument("--dry-run", action="store_true", help="Show what would be done without sending")
    clean.add_argument(
        "--batch-size", type=int, default=None, help="CloseAccount instructions per tx (default: 10)"
    )
    return ap


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _cmd_scan(args: argparse.Namespace, config: ReclaimConfig) -> int:
    orchestrator = ReclamationOrchestrator(config)
    classification = orchestrator.scan(args.wallet)
    if args.json:
        print(json.dumps({
            "wallet": args.wallet,
            "total_scanned": classification.total_scanned,
            "total_closeable": len(classification.closeable),
            "total_non_closeable": len(classification.non_closeable),
            "estimated_recoverable_sol": classification.estimated_recoverable_sol,
            "closeable": [
                {"address": r.address, "mint": r.mint, "program_id": r.program_id, "lamports": r.lamports}
                for r in classification.closeable
            ],
        }, indent=2))
    else:
        print_scan(args.wallet, classification)
    return 0


def _cmd_clean(args: argparse.Namespace, config: ReclaimConfig) -> int:
    keypair = None
    if not args.dry_run:
        if not args.keypair:
            print("ERROR: Keypair required. Use --keypair <path>", file=sys.stderr)
            print(f"  Example: rent-reclaim clean {args.wallet} --keypair ~/.config/solana/id.json", file=sys.stderr)
            return 1
    if args.keypair:
        keypair = load_keypair(args.keypair).unwrap()

    orchestrator = ReclamationOrchestrator(
        config,
        confirm=prompt_confirmation,
        on_outcome=None if args.json else print_outcome,
    )
    report = orchestrator.run(args.wallet, keypair, dry_run=args.dry_run, assume_yes=args.yes)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print_report(report)
    return 0 if report.all_succeeded else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        config = ReclaimConfig.from_env(
            rpc_url=args.rpc_url,
            batch_size=getattr(args, "batch_size", None),
        )
        if args.command == "scan":
            return _cmd_scan(args, config)
        return _cmd_clean(args, config)
    except ReclaimError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
