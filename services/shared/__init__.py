"""
Shared domain records for the election backend.

This package contains code used by the API service, the stores and the
maintenance scripts:
- Domain records (Voter, Candidate, Ballot)
- Input helpers
"""

from .models import (
    Voter,
    Candidate,
    Ballot,
    is_blank,
    get_current_timestamp,
)

__all__ = [
    'Voter',
    'Candidate',
    'Ballot',
    'is_blank',
    'get_current_timestamp',
]

__version__ = '1.0.0'
