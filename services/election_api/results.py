"""
Vote aggregation and ballot maintenance.

Only positions contested by at least one registered candidate count. Ballot
entries for any other position are skipped when tallying and removed by the
cleanup job.
"""
import logging
from typing import Dict, List, Set

from services.shared import Candidate
from .stores import BallotStore, CandidateStore

logger = logging.getLogger(__name__)


class ResultsAggregator:
    """Tallies ballots against the candidate registry."""

    def __init__(self, ballots: BallotStore, candidates: CandidateStore):
        self.ballots = ballots
        self.candidates = candidates

    async def list_candidates(self) -> List[Candidate]:
        return await self.candidates.find_all()

    async def valid_positions(self) -> Set[str]:
        """Distinct positions across all registered candidates."""
        return {candidate.position for candidate in await self.candidates.find_all()}

    async def compute_results(self) -> Dict[str, Dict[str, int]]:
        """
        Count votes per position per candidate.

        Returns:
            Dictionary mapping position to {candidate_id: count}. No ordering
            is guaranteed for positions or candidates.
        """
        positions = await self.valid_positions()
        ballots = await self.ballots.find_all()

        results: Dict[str, Dict[str, int]] = {}
        skipped = 0
        for ballot in ballots:
            for position, candidate_id in ballot.votes.items():
                if position not in positions:
                    skipped += 1
                    continue

                counts = results.setdefault(position, {})
                counts[candidate_id] = counts.get(candidate_id, 0) + 1

        logger.debug(
            f"Results computed: {len(ballots)} ballots, "
            f"{len(results)} positions, {skipped} invalid entries skipped"
        )
        return results

    async def cleanup_invalid_votes(self) -> int:
        """
        Remove ballot entries whose position no candidate contests.

        Returns:
            Number of ballots modified
        """
        positions = await self.valid_positions()
        ballots = await self.ballots.find_all()

        modified = 0
        for ballot in ballots:
            invalid = [p for p in ballot.votes if p not in positions]
            if not invalid:
                continue
            if await self.ballots.remove_positions(ballot.voter_id, invalid):
                modified += 1
                logger.info(
                    f"Removed invalid positions {invalid} from ballot {ballot.voter_id}"
                )

        logger.info(f"Invalid vote cleanup finished: {modified} ballots modified")
        return modified
