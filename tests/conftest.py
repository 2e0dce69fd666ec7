"""Pytest fixtures shared by the unit and integration tests.

Services and the API are built on the in-memory stores, seeded with a small
candidate registry. bcrypt runs at its minimum cost factor to keep the suite
fast.
"""

from typing import AsyncGenerator, Dict, List

import httpx
import pytest

from services.election_api.auth import AuthService
from services.election_api.config import Settings
from services.election_api.main import create_app
from services.election_api.memory import memory_stores
from services.election_api.results import ResultsAggregator
from services.election_api.stores import Stores
from services.election_api.voting import VotingService
from services.shared import Candidate


@pytest.fixture
def candidates() -> List[Candidate]:
    """Registry with two presidential candidates and one secretary."""
    return [
        Candidate(id="cand-a", full_name="Ada Obi", position="president", department="Law"),
        Candidate(id="cand-b", full_name="Bola Ade", position="president", department="Physics"),
        Candidate(id="cand-c", full_name="Chike Eze", position="secretary", department="English"),
    ]


@pytest.fixture
def stores(candidates: List[Candidate]) -> Stores:
    """Fresh in-memory stores for each test."""
    return memory_stores(candidates)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(BCRYPT_ROUNDS=4, STORAGE_BACKEND="memory")


@pytest.fixture
def auth_service(stores: Stores) -> AuthService:
    return AuthService(stores.voters, rounds=4)


@pytest.fixture
def voting_service(stores: Stores) -> VotingService:
    return VotingService(stores.ballots, stores.candidates, stores.voters)


@pytest.fixture
def strict_voting_service(stores: Stores) -> VotingService:
    return VotingService(stores.ballots, stores.candidates, stores.voters, strict=True)


@pytest.fixture
def aggregator(stores: Stores) -> ResultsAggregator:
    return ResultsAggregator(stores.ballots, stores.candidates)


@pytest.fixture
async def api_client(
    stores: Stores, test_settings: Settings
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client wired straight to the ASGI app."""
    app = create_app(stores, test_settings)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def sample_signup() -> Dict:
    """Valid signup payload."""
    return {
        "matricNumber": "CSC/2021/001",
        "fullName": "Ngozi Okafor",
        "department": "Computer Science",
        "faculty": "Science",
        "hallOfResidence": "Moremi",
        "level": 300,
        "password": "correct-horse"
    }
