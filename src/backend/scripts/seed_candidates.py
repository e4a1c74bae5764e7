"""
Seed script to create the candidates of an election.
Run with: python -m scripts.seed_candidates [--election ID] [NAME ...]
"""

import argparse
import asyncio
import re

from scripts._common import open_session_factory  # sets up sys.path

from core.config import settings
from db.session import create_all
from repositories.candidate_repository import CandidateRepository

SEED_CANDIDATES = [
    "Ada Lovelace",
    "Alan Turing",
    "Grace Hopper",
    "Katherine Johnson",
]


def slugify(name: str) -> str:
    """Stable candidate id derived from the display name."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")[:64]


async def seed_candidates(election_id: str, names: list[str]) -> None:
    """Create candidates that do not exist yet."""
    engine, session_factory = open_session_factory()
    try:
        await create_all(engine)

        created = 0
        async with session_factory.begin() as session:
            repo = CandidateRepository(session)
            for name in names:
                candidate_id = slugify(name)
                if await repo.get_by_id(candidate_id) is not None:
                    print(f"✓ {name} already exists ({candidate_id})")
                    continue
                await repo.create(
                    candidate_id=candidate_id,
                    election_id=election_id,
                    display_name=name,
                )
                created += 1
                print(f"Created candidate: {name} ({candidate_id})")

        print(f"\n✅ Created {created} candidates for election '{election_id}'")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed election candidates")
    parser.add_argument(
        "--election",
        default=settings.ELECTION_ID,
        help="Election id (defaults to ELECTION_ID)",
    )
    parser.add_argument("names", nargs="*", help="Candidate display names")
    args = parser.parse_args()

    asyncio.run(seed_candidates(args.election, args.names or SEED_CANDIDATES))
