#!/usr/bin/env python3
"""
Load candidates into PostgreSQL from a JSON file.

The API has no candidate-creation endpoint, so the registry is seeded out of
band. Existing candidates with the same id are updated in place.

Usage:
    python3 scripts/seed_candidates.py scripts/candidates.example.json
"""
import asyncio
import json
import sys
import uuid
from typing import List

from services.election_api.database import Database
from services.shared import Candidate


def load_candidates(filename: str) -> List[Candidate]:
    """Read candidates from a JSON list; missing ids get a random one."""
    with open(filename) as f:
        entries = json.load(f)

    candidates = []
    for entry in entries:
        candidates.append(Candidate.from_dict({
            "id": entry.get("id") or uuid.uuid4().hex,
            "full_name": entry["fullName"],
            "position": entry["position"],
            "department": entry.get("department"),
            "image": entry.get("image"),
        }))
    return candidates


async def seed(candidates: List[Candidate]):
    """Upsert candidates into the registry."""
    database = Database()
    await database.initialize()
    try:
        store = database.stores().candidates
        for candidate in candidates:
            await store.upsert(candidate)
            print(f"  {candidate.position:<20} {candidate.full_name} ({candidate.id})")

        positions = {c.position for c in await store.find_all()}
        print(f"\n✅ Registry now holds {len(positions)} position(s)")
    finally:
        await database.close()


if __name__ == '__main__':
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)

    print("=" * 60)
    print("SEEDING CANDIDATE REGISTRY")
    print("=" * 60)

    asyncio.run(seed(load_candidates(sys.argv[1])))
