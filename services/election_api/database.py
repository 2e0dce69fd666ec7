"""PostgreSQL database connection and store queries."""
import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional

import asyncpg

from services.shared import Ballot, Candidate, Voter
from .config import settings
from .errors import ConflictError, StorageError
from .stores import BallotStore, CandidateStore, Stores, VoterStore

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS voters (
    matric_number     TEXT PRIMARY KEY,
    full_name         TEXT NOT NULL,
    department        TEXT,
    faculty           TEXT,
    hall_of_residence TEXT,
    level             INTEGER,
    password_hash     TEXT NOT NULL,
    created_at        TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS candidates (
    id         TEXT PRIMARY KEY,
    full_name  TEXT NOT NULL,
    position   TEXT NOT NULL,
    department TEXT,
    image      TEXT
);

CREATE TABLE IF NOT EXISTS ballots (
    voter_id   TEXT PRIMARY KEY,
    votes      JSONB NOT NULL DEFAULT '{}'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""


async def _init_connection(conn: asyncpg.Connection):
    """Decode JSONB columns into Python dicts."""
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog"
    )


class Database:
    """Async PostgreSQL database manager."""

    def __init__(self, dsn: Optional[str] = None):
        self.dsn = dsn or settings.postgres_dsn
        self.pool: Optional[asyncpg.Pool] = None

    async def initialize(self):
        """Initialize database connection pool and create tables."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=settings.POSTGRES_POOL_MIN_SIZE,
                max_size=settings.POSTGRES_POOL_MAX_SIZE,
                command_timeout=60,
                init=_init_connection
            )
            logger.info("PostgreSQL connection pool initialized successfully")

            async with self.pool.acquire() as conn:
                await conn.execute(SCHEMA_SQL)
                logger.info("PostgreSQL schema verified")

        except Exception as e:
            logger.error(f"Failed to initialize PostgreSQL connection pool: {e}")
            raise

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[asyncpg.Connection]:
        """
        Context manager for pooled connections.

        Driver and network failures are re-raised as StorageError so callers
        never see asyncpg internals.
        """
        if self.pool is None:
            raise StorageError("Database is not initialized")
        try:
            async with self.pool.acquire() as conn:
                yield conn
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(f"Database error: {e}")
            raise StorageError() from e

    async def check_health(self) -> bool:
        """Check database connection health."""
        try:
            if not self.pool:
                return False
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except Exception as e:
            logger.error(f"PostgreSQL health check failed: {e}")
            return False

    async def close(self):
        """Close database connection pool."""
        try:
            if self.pool:
                await self.pool.close()
                logger.info("PostgreSQL connection pool closed successfully")
        except Exception as e:
            logger.error(f"Error closing PostgreSQL connection pool: {e}")

    def stores(self) -> Stores:
        """Build the three stores on top of this pool."""
        return Stores(
            voters=PostgresVoterStore(self),
            candidates=PostgresCandidateStore(self),
            ballots=PostgresBallotStore(self),
        )


class PostgresVoterStore(VoterStore):
    """Voters table access."""

    COLUMNS = (
        "matric_number, full_name, department, faculty, "
        "hall_of_residence, level, password_hash"
    )

    def __init__(self, db: Database):
        self.db = db

    async def find(self, matric_number: str) -> Optional[Voter]:
        async with self.db.connection() as conn:
            row = await conn.fetchrow(
                f"SELECT {self.COLUMNS} FROM voters WHERE matric_number = $1",
                matric_number
            )
        return Voter.from_dict(dict(row)) if row else None

    async def find_all(self) -> List[Voter]:
        async with self.db.connection() as conn:
            rows = await conn.fetch(
                f"SELECT {self.COLUMNS} FROM voters ORDER BY matric_number"
            )
        return [Voter.from_dict(dict(row)) for row in rows]

    async def create(self, voter: Voter) -> Voter:
        query = f"""
            INSERT INTO voters ({self.COLUMNS})
            VALUES ($1, $2, $3, $4, $5, $6, $7)
        """
        async with self.db.connection() as conn:
            try:
                await conn.execute(
                    query,
                    voter.matric_number, voter.full_name, voter.department,
                    voter.faculty, voter.hall_of_residence, voter.level,
                    voter.password_hash
                )
            except asyncpg.UniqueViolationError:
                raise ConflictError(
                    "Matric Number already registered. Please login instead."
                )
        return voter

    async def count(self) -> int:
        async with self.db.connection() as conn:
            return await conn.fetchval("SELECT COUNT(*) FROM voters")


class PostgresCandidateStore(CandidateStore):
    """Candidates table access."""

    def __init__(self, db: Database):
        self.db = db

    async def find(self, candidate_id: str) -> Optional[Candidate]:
        async with self.db.connection() as conn:
            row = await conn.fetchrow(
                """
                SELECT id, full_name, position, department, image
                FROM candidates
                WHERE id = $1
                """,
                candidate_id
            )
        return Candidate.from_dict(dict(row)) if row else None

    async def find_all(self) -> List[Candidate]:
        async with self.db.connection() as conn:
            rows = await conn.fetch(
                """
                SELECT id, full_name, position, department, image
                FROM candidates
                ORDER BY position, full_name
                """
            )
        return [Candidate.from_dict(dict(row)) for row in rows]

    async def upsert(self, candidate: Candidate) -> Candidate:
        query = """
            INSERT INTO candidates (id, full_name, position, department, image)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (id)
            DO UPDATE SET
                full_name = EXCLUDED.full_name,
                position = EXCLUDED.position,
                department = EXCLUDED.department,
                image = EXCLUDED.image
        """
        async with self.db.connection() as conn:
            await conn.execute(
                query,
                candidate.id, candidate.full_name, candidate.position,
                candidate.department, candidate.image
            )
        return candidate


class PostgresBallotStore(BallotStore):
    """Ballots table access. ``votes`` is a JSONB object position -> candidate."""

    def __init__(self, db: Database):
        self.db = db

    async def find(self, voter_id: str) -> Optional[Dict[str, str]]:
        async with self.db.connection() as conn:
            row = await conn.fetchrow(
                "SELECT votes FROM ballots WHERE voter_id = $1",
                voter_id
            )
        return dict(row["votes"]) if row else None

    async def find_all(self) -> List[Ballot]:
        async with self.db.connection() as conn:
            rows = await conn.fetch(
                "SELECT voter_id, votes FROM ballots ORDER BY created_at"
            )
        return [Ballot(voter_id=row["voter_id"], votes=dict(row["votes"])) for row in rows]

    async def add_choice(
        self, voter_id: str, position: str, candidate_id: str
    ) -> Optional[Dict[str, str]]:
        # The conflict branch only fires when the position key is absent, so
        # the row lock on the ballot serializes concurrent writers.
        query = """
            INSERT INTO ballots (voter_id, votes, created_at, updated_at)
            VALUES ($1, jsonb_build_object($2::text, $3::text), NOW(), NOW())
            ON CONFLICT (voter_id)
            DO UPDATE SET
                votes = ballots.votes || EXCLUDED.votes,
                updated_at = NOW()
            WHERE NOT (ballots.votes ? $2::text)
            RETURNING votes
        """
        async with self.db.connection() as conn:
            row = await conn.fetchrow(query, voter_id, position, candidate_id)
        return dict(row["votes"]) if row else None

    async def remove_positions(self, voter_id: str, positions: List[str]) -> bool:
        if not positions:
            return False
        query = """
            UPDATE ballots
            SET votes = votes - $2::text[],
                updated_at = NOW()
            WHERE voter_id = $1 AND votes ?| $2::text[]
            RETURNING voter_id
        """
        async with self.db.connection() as conn:
            row = await conn.fetchrow(query, voter_id, list(positions))
        return row is not None
