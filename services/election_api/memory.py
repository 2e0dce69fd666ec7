"""In-process stores backed by dictionaries.

Used when ``STORAGE_BACKEND=memory`` (local demos) and by the test suite.
State lives only as long as the process.
"""
import asyncio
from typing import Dict, Iterable, List, Optional

from services.shared import Ballot, Candidate, Voter
from .errors import ConflictError
from .stores import BallotStore, CandidateStore, Stores, VoterStore


class MemoryVoterStore(VoterStore):

    def __init__(self):
        self._voters: Dict[str, Voter] = {}
        self._lock = asyncio.Lock()

    async def find(self, matric_number: str) -> Optional[Voter]:
        return self._voters.get(matric_number)

    async def find_all(self) -> List[Voter]:
        return list(self._voters.values())

    async def create(self, voter: Voter) -> Voter:
        async with self._lock:
            if voter.matric_number in self._voters:
                raise ConflictError(
                    "Matric Number already registered. Please login instead."
                )
            self._voters[voter.matric_number] = voter
        return voter

    async def count(self) -> int:
        return len(self._voters)


class MemoryCandidateStore(CandidateStore):

    def __init__(self, candidates: Optional[Iterable[Candidate]] = None):
        self._candidates: Dict[str, Candidate] = {}
        for candidate in candidates or ():
            self._candidates[candidate.id] = candidate

    async def find(self, candidate_id: str) -> Optional[Candidate]:
        return self._candidates.get(candidate_id)

    async def find_all(self) -> List[Candidate]:
        return list(self._candidates.values())

    async def upsert(self, candidate: Candidate) -> Candidate:
        self._candidates[candidate.id] = candidate
        return candidate


class MemoryBallotStore(BallotStore):

    def __init__(self):
        self._ballots: Dict[str, Dict[str, str]] = {}
        self._lock = asyncio.Lock()

    async def find(self, voter_id: str) -> Optional[Dict[str, str]]:
        votes = self._ballots.get(voter_id)
        return dict(votes) if votes is not None else None

    async def find_all(self) -> List[Ballot]:
        return [
            Ballot(voter_id=voter_id, votes=dict(votes))
            for voter_id, votes in self._ballots.items()
        ]

    async def add_choice(
        self, voter_id: str, position: str, candidate_id: str
    ) -> Optional[Dict[str, str]]:
        async with self._lock:
            votes = self._ballots.setdefault(voter_id, {})
            if position in votes:
                return None
            votes[position] = candidate_id
            return dict(votes)

    async def remove_positions(self, voter_id: str, positions: List[str]) -> bool:
        async with self._lock:
            votes = self._ballots.get(voter_id)
            if votes is None:
                return False
            removed = [p for p in positions if p in votes]
            for position in removed:
                del votes[position]
            return bool(removed)


def memory_stores(candidates: Optional[Iterable[Candidate]] = None) -> Stores:
    """Build a fresh set of in-memory stores."""
    return Stores(
        voters=MemoryVoterStore(),
        candidates=MemoryCandidateStore(candidates),
        ballots=MemoryBallotStore(),
    )
