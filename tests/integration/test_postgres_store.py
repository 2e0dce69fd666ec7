"""Integration tests for the PostgreSQL stores.

Requires: TEST_DATABASE_URL pointing at a disposable database. The tables
are truncated before every test.
"""

import asyncio
import os
from typing import AsyncGenerator

import pytest

from services.election_api.database import Database
from services.election_api.errors import ConflictError, StorageError
from services.election_api.results import ResultsAggregator
from services.election_api.stores import Stores
from services.election_api.voting import VotingService
from services.shared import Candidate, Voter


TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")


@pytest.fixture
async def database() -> AsyncGenerator[Database, None]:
    """Connected database with empty tables."""
    if not TEST_DATABASE_URL:
        pytest.skip("TEST_DATABASE_URL not set")

    db = Database(TEST_DATABASE_URL)
    try:
        await db.initialize()
    except Exception as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    async with db.connection() as conn:
        await conn.execute("TRUNCATE TABLE ballots, voters, candidates")

    yield db

    await db.close()


@pytest.fixture
async def pg_stores(database: Database) -> Stores:
    stores = database.stores()
    await stores.candidates.upsert(Candidate(id="A", full_name="Candidate A", position="president"))
    await stores.candidates.upsert(Candidate(id="B", full_name="Candidate B", position="president"))
    return stores


@pytest.mark.docker
@pytest.mark.asyncio
class TestPostgresStores:
    """Tests for the asyncpg-backed stores."""

    async def test_voter_create_and_find(self, pg_stores: Stores):
        voter = Voter(
            matric_number="CSC/2021/001",
            full_name="Ngozi Okafor",
            password_hash="$2b$04$abcdefghijklmnopqrstuv",
            level=300
        )
        await pg_stores.voters.create(voter)

        found = await pg_stores.voters.find("CSC/2021/001")
        assert found == voter
        assert await pg_stores.voters.count() == 1

    async def test_voter_duplicate_key(self, pg_stores: Stores):
        voter = Voter(matric_number="CSC/2021/001", full_name="Ngozi Okafor", password_hash="x")
        await pg_stores.voters.create(voter)

        with pytest.raises(ConflictError):
            await pg_stores.voters.create(voter)

        assert await pg_stores.voters.count() == 1

    async def test_add_choice_is_append_only(self, pg_stores: Stores):
        assert await pg_stores.ballots.add_choice("voter1", "president", "A") == {"president": "A"}
        assert await pg_stores.ballots.add_choice("voter1", "president", "B") is None
        assert await pg_stores.ballots.add_choice("voter1", "secretary", "C") == {
            "president": "A",
            "secretary": "C",
        }
        assert await pg_stores.ballots.find("voter1") == {"president": "A", "secretary": "C"}
        assert await pg_stores.ballots.find("voter2") is None

    async def test_concurrent_votes_one_wins(self, pg_stores: Stores):
        """Test: Concurrent votes for the same voter and position.

        Flow:
        1. Fire ten add_choice calls at once, alternating candidates
        2. Verify exactly one write succeeded
        3. Verify the stored choice is the winner's
        """
        outcomes = await asyncio.gather(*[
            pg_stores.ballots.add_choice("voter1", "president", "A" if i % 2 else "B")
            for i in range(10)
        ])

        winners = [o for o in outcomes if o is not None]
        assert len(winners) == 1
        assert await pg_stores.ballots.find("voter1") == winners[0]

    async def test_results_and_cleanup(self, pg_stores: Stores):
        voting = VotingService(pg_stores.ballots, pg_stores.candidates, pg_stores.voters)
        aggregator = ResultsAggregator(pg_stores.ballots, pg_stores.candidates)

        await voting.cast_vote("voter1", "A", "president")
        await voting.cast_vote("voter2", "B", "president")
        await voting.cast_vote("voter3", "A", "president")
        await voting.cast_vote("voter3", "Z", "treasurer")

        assert await aggregator.compute_results() == {"president": {"A": 2, "B": 1}}
        assert await aggregator.cleanup_invalid_votes() == 1
        assert await pg_stores.ballots.find("voter3") == {"president": "A"}
        assert await aggregator.cleanup_invalid_votes() == 0

    async def test_closed_pool_raises_storage_error(self, database: Database):
        stores = database.stores()
        await database.close()
        database.pool = None

        with pytest.raises(StorageError):
            await stores.ballots.find("voter1")
