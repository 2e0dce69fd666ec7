"""Vote casting with the one-choice-per-position rule."""
import logging
from typing import Any, Dict, List, Optional

from services.shared import is_blank
from .errors import ConflictError, ValidationError
from .stores import BallotStore, CandidateStore, VoterStore

logger = logging.getLogger(__name__)


class VotingService:
    """
    Records ballots.

    By default a choice is stored without checking the candidate registry;
    invalid positions are dropped later by the results aggregator and the
    cleanup job. With ``strict=True`` the candidate must exist and contest
    the given position.
    """

    def __init__(
        self,
        ballots: BallotStore,
        candidates: CandidateStore,
        voters: VoterStore,
        strict: bool = False,
    ):
        self.ballots = ballots
        self.candidates = candidates
        self.voters = voters
        self.strict = strict

    async def cast_vote(
        self,
        voter_id: Optional[str],
        candidate_id: Optional[str],
        position: Optional[str],
    ) -> Dict[str, str]:
        """
        Record a voter's choice for one position.

        Args:
            voter_id: Voter's matric number
            candidate_id: Chosen candidate
            position: Position being voted on

        Returns:
            The voter's full position -> candidate mapping

        Raises:
            ValidationError: An input is missing (or, in strict mode, the
                candidate does not contest the position)
            ConflictError: The voter already voted for this position
        """
        if is_blank(voter_id) or is_blank(candidate_id) or is_blank(position):
            raise ValidationError("All fields are required.")

        if self.strict:
            await self._check_candidate(candidate_id, position)

        votes = await self.ballots.add_choice(voter_id, position, candidate_id)
        if votes is None:
            logger.info(f"Duplicate vote rejected: voter={voter_id}, position={position}")
            raise ConflictError("You have already voted for this position.")

        logger.info(
            f"Vote recorded: voter={voter_id}, position={position}, "
            f"candidate={candidate_id}"
        )
        return votes

    async def _check_candidate(self, candidate_id: str, position: str):
        candidate = await self.candidates.find(candidate_id)
        if candidate is None:
            raise ValidationError(f"Candidate {candidate_id} not found")
        if candidate.position != position:
            raise ValidationError(
                f"Candidate {candidate_id} is not contesting {position}"
            )

    async def get_ballot(self, voter_id: str) -> Dict[str, str]:
        """Return the voter's choices; empty if they have not voted."""
        votes = await self.ballots.find(voter_id)
        return votes or {}

    async def list_ballots(self) -> List[Dict[str, Any]]:
        """
        All ballots with the voter's matric number and name attached.

        ``user`` is None when the ballot points at an unknown voter.
        """
        ballots = await self.ballots.find_all()
        voters = {voter.matric_number: voter for voter in await self.voters.find_all()}

        listing = []
        for ballot in ballots:
            voter = voters.get(ballot.voter_id)
            listing.append({
                "user_id": ballot.voter_id,
                "user": {
                    "matric_number": voter.matric_number,
                    "full_name": voter.full_name,
                } if voter else None,
                "votes": ballot.votes,
            })
        return listing
