"""Store interfaces shared by the PostgreSQL and in-memory backends."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from services.shared import Ballot, Candidate, Voter


class VoterStore(ABC):
    """Credential store keyed by matric number."""

    @abstractmethod
    async def find(self, matric_number: str) -> Optional[Voter]:
        ...

    @abstractmethod
    async def find_all(self) -> List[Voter]:
        ...

    @abstractmethod
    async def create(self, voter: Voter) -> Voter:
        """Persist a new voter. Raises ConflictError if the key is taken."""

    @abstractmethod
    async def count(self) -> int:
        ...


class CandidateStore(ABC):
    """Candidate registry (pre-seeded reference data)."""

    @abstractmethod
    async def find(self, candidate_id: str) -> Optional[Candidate]:
        ...

    @abstractmethod
    async def find_all(self) -> List[Candidate]:
        ...

    @abstractmethod
    async def upsert(self, candidate: Candidate) -> Candidate:
        ...


class BallotStore(ABC):
    """Per-voter position -> candidate choices."""

    @abstractmethod
    async def find(self, voter_id: str) -> Optional[Dict[str, str]]:
        """Return the voter's choices, or None if no ballot exists."""

    @abstractmethod
    async def find_all(self) -> List[Ballot]:
        ...

    @abstractmethod
    async def add_choice(
        self, voter_id: str, position: str, candidate_id: str
    ) -> Optional[Dict[str, str]]:
        """
        Atomically record a choice for a position not yet voted on.

        Creates the ballot if it does not exist.

        Returns:
            The full choice mapping after the write, or None if the ballot
            already has an entry for ``position`` (nothing is written).
        """

    @abstractmethod
    async def remove_positions(self, voter_id: str, positions: List[str]) -> bool:
        """Remove the given positions from a ballot. True if it changed."""


@dataclass
class Stores:
    """The three stores the services are built from."""
    voters: VoterStore
    candidates: CandidateStore
    ballots: BallotStore
