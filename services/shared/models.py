"""
Shared domain records for the election backend.

This module contains:
- Voter: registered participant keyed by matriculation number
- Candidate: contestant for a single position
- Ballot: one voter's position -> candidate choices
- Small helpers shared by the services (blank checks, timestamps)
"""

from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any


@dataclass
class Voter:
    """
    Registered voter.

    Attributes:
        matric_number: Unique matriculation number (identity key)
        full_name: Voter's full name
        password_hash: bcrypt hash of the voter's password
        department: Optional department
        faculty: Optional faculty
        hall_of_residence: Optional hall of residence
        level: Optional numeric study level
    """
    matric_number: str
    full_name: str
    password_hash: str
    department: Optional[str] = None
    faculty: Optional[str] = None
    hall_of_residence: Optional[str] = None
    level: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, hash included (storage use only)."""
        return asdict(self)

    def public_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with the credential hash stripped."""
        data = self.to_dict()
        data.pop("password_hash", None)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Voter':
        """Create Voter from a dictionary (or a database row)."""
        return cls(
            matric_number=data["matric_number"],
            full_name=data["full_name"],
            password_hash=data["password_hash"],
            department=data.get("department"),
            faculty=data.get("faculty"),
            hall_of_residence=data.get("hall_of_residence"),
            level=data.get("level"),
        )


@dataclass
class Candidate:
    """Candidate contesting exactly one position."""
    id: str
    full_name: str
    position: str
    department: Optional[str] = None
    image: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Candidate':
        return cls(
            id=str(data["id"]),
            full_name=data["full_name"],
            position=data["position"],
            department=data.get("department"),
            image=data.get("image"),
        )


@dataclass
class Ballot:
    """
    A voter's recorded choices.

    ``votes`` maps position -> candidate id, at most one entry per position.
    ``voter_id`` is a soft reference to a matric number; nothing enforces
    that the voter exists.
    """
    voter_id: str
    votes: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def is_blank(value: Optional[str]) -> bool:
    """
    Check whether a required text input is missing.

    Args:
        value: Raw input value

    Returns:
        bool: True if value is None or only whitespace
    """
    return value is None or not str(value).strip()


def get_current_timestamp() -> datetime:
    """Get current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)
