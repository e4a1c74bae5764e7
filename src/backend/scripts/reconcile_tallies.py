"""
Audit cached candidate tallies against the vote records.
Run with: python -m scripts.reconcile_tallies [--apply]

Without --apply the script only reports drift and exits non-zero when it
finds any. With --apply drifted tallies are rebuilt from the vote records;
run it while no votes are being admitted.
"""

import argparse
import asyncio
import sys

from scripts._common import open_session_factory  # sets up sys.path

from core.config import settings
from services.tally_reconciler import TallyReconciler


async def run(election_id: str, apply: bool) -> int:
    engine, session_factory = open_session_factory()
    try:
        reconciler = TallyReconciler(session_factory, election_id)
        if apply:
            fixed = await reconciler.reconcile()
            for d in fixed:
                print(f"  ✓ {d.candidate_id}: {d.tally} -> {d.counted}")
            print(f"\nReconciled {len(fixed)} candidate tallies")
            return 0

        discrepancies = await reconciler.audit()
        if not discrepancies:
            print("✓ All tallies match the vote records")
            return 0

        print(f"Tally drift found ({len(discrepancies)}):")
        for d in discrepancies:
            print(f"  • {d.candidate_id}: tally={d.tally} counted={d.counted} drift={d.drift:+d}")
        print("\nRun with --apply to rebuild these tallies.")
        return 1
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Tally reconciliation")
    parser.add_argument("--election", default=settings.ELECTION_ID, help="Election id")
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Rebuild drifted tallies instead of only reporting them",
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args.election, args.apply)))
