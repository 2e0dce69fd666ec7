"""
Voter registration and credential checks.

Passwords are hashed with bcrypt. Hashing and verification are CPU bound, so
both run in the event loop's default executor to keep other requests moving.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import bcrypt

from services.shared import Voter, is_blank
from .errors import AuthenticationError, ConflictError, ValidationError
from .stores import VoterStore

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int) -> str:
    """Hash a password with a fresh salt at the given cost factor."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison of a password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash or over-long input
        return False


class AuthService:
    """Registers voters and verifies their credentials."""

    def __init__(self, voters: VoterStore, rounds: int = 10):
        self.voters = voters
        self.rounds = rounds

    async def register(
        self,
        matric_number: Optional[str],
        full_name: Optional[str],
        password: Optional[str],
        department: Optional[str] = None,
        faculty: Optional[str] = None,
        hall_of_residence: Optional[str] = None,
        level: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Register a new voter.

        Args:
            matric_number: Unique matriculation number
            full_name: Voter's full name
            password: Plaintext password, hashed before storage
            department, faculty, hall_of_residence, level: Optional profile

        Returns:
            The stored voter without its password hash

        Raises:
            ValidationError: A required field is missing or the password is too long
            ConflictError: The matric number is already registered
        """
        if is_blank(matric_number) or is_blank(full_name) or is_blank(password):
            logger.info("Signup rejected: missing required fields")
            raise ValidationError("Missing required fields")

        if len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValidationError(
                f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes"
            )

        if await self.voters.find(matric_number) is not None:
            logger.info(f"Signup rejected: {matric_number} already registered")
            raise ConflictError("Matric Number already registered. Please login instead.")

        loop = asyncio.get_running_loop()
        password_hash = await loop.run_in_executor(
            None, hash_password, password, self.rounds
        )

        voter = Voter(
            matric_number=matric_number,
            full_name=full_name,
            password_hash=password_hash,
            department=department,
            faculty=faculty,
            hall_of_residence=hall_of_residence,
            level=level,
        )
        # The store re-checks uniqueness, covering a concurrent signup
        await self.voters.create(voter)
        logger.info(f"Voter registered: {matric_number}")

        return voter.public_dict()

    async def authenticate(
        self, matric_number: Optional[str], password: Optional[str]
    ) -> Dict[str, Any]:
        """
        Verify a voter's credentials.

        Unknown matric number and wrong password raise the same error.

        Returns:
            The voter without its password hash

        Raises:
            AuthenticationError: Credentials did not match
        """
        if is_blank(matric_number) or not password:
            raise AuthenticationError()

        voter = await self.voters.find(matric_number)
        if voter is None:
            logger.info(f"Login failed for {matric_number}")
            raise AuthenticationError()

        loop = asyncio.get_running_loop()
        matches = await loop.run_in_executor(
            None, verify_password, password, voter.password_hash
        )
        if not matches:
            logger.info(f"Login failed for {matric_number}")
            raise AuthenticationError()

        logger.info(f"Login succeeded for {matric_number}")
        return voter.public_dict()
