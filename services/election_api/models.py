"""Pydantic models for request/response validation.

Wire names are camelCase; Python attributes are snake_case.
"""
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from services.shared import get_current_timestamp


class ApiModel(BaseModel):
    """Base model accepting both alias and field names."""

    class Config:
        populate_by_name = True


class SignupRequest(ApiModel):
    """Voter registration request model.

    Required fields are optional here so that a missing value reaches the
    service and is reported as a 400, like any other validation failure.
    """

    matric_number: Optional[str] = Field(None, alias="matricNumber", description="Matriculation number")
    full_name: Optional[str] = Field(None, alias="fullName", description="Full name")
    department: Optional[str] = Field(None, description="Department")
    faculty: Optional[str] = Field(None, description="Faculty")
    hall_of_residence: Optional[str] = Field(None, alias="hallOfResidence", description="Hall of residence")
    level: Optional[int] = Field(None, description="Study level, e.g. 300")
    password: Optional[str] = Field(None, description="Plaintext password")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "matricNumber": "CSC/2021/001",
                "fullName": "Ada Obi",
                "department": "Computer Science",
                "faculty": "Science",
                "hallOfResidence": "Moremi",
                "level": 300,
                "password": "s3cret-pass"
            }
        }


class LoginRequest(ApiModel):
    """Login request model."""

    matric_number: Optional[str] = Field(None, alias="matricNumber")
    password: Optional[str] = None


class VoteRequest(ApiModel):
    """Vote submission request model."""

    user_id: Optional[str] = Field(None, alias="userId", description="Voter's matric number")
    candidate_id: Optional[str] = Field(None, alias="candidateId", description="Chosen candidate ID")
    position: Optional[str] = Field(None, description="Position being voted on")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "userId": "CSC/2021/001",
                "candidateId": "cand-01",
                "position": "president"
            }
        }


class VoterPublic(ApiModel):
    """Voter as returned to clients (never carries the password hash)."""

    matric_number: str = Field(..., alias="matricNumber")
    full_name: str = Field(..., alias="fullName")
    department: Optional[str] = None
    faculty: Optional[str] = None
    hall_of_residence: Optional[str] = Field(None, alias="hallOfResidence")
    level: Optional[int] = None


class VoterSummary(ApiModel):
    """Voter identity attached to a ballot listing."""

    matric_number: str = Field(..., alias="matricNumber")
    full_name: str = Field(..., alias="fullName")


class MessageResponse(BaseModel):
    message: str


class SignupResponse(BaseModel):
    message: str = "User registered successfully"
    user: VoterPublic


class LoginResponse(BaseModel):
    user: VoterPublic


class VoteResponse(BaseModel):
    """Vote submission response model."""

    message: str = "Vote recorded successfully."
    votes: Dict[str, str] = Field(..., description="Position -> candidate ID")


class BallotEntry(ApiModel):
    user_id: str = Field(..., alias="userId")
    user: Optional[VoterSummary] = None
    votes: Dict[str, str]


class BallotListResponse(BaseModel):
    votes: List[BallotEntry]


class ResultsResponse(BaseModel):
    """Tally response model."""

    results: Dict[str, Dict[str, int]] = Field(
        ..., description="Position -> candidate ID -> vote count"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "results": {
                    "president": {"cand-01": 2, "cand-02": 1}
                }
            }
        }


class CleanupResponse(ApiModel):
    message: str
    modified_count: int = Field(..., alias="modifiedCount")


class CandidateInfo(ApiModel):
    """Candidate information model."""

    id: str
    full_name: str = Field(..., alias="fullName")
    position: str
    department: Optional[str] = None
    image: Optional[str] = None


class CandidateListResponse(BaseModel):
    candidates: List[CandidateInfo]


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall health status")
    services: dict = Field(..., description="Status of individual services")
    timestamp: datetime = Field(
        default_factory=get_current_timestamp,
        description="Health check timestamp"
    )


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: dict = Field(default_factory=dict, description="Additional error details")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "ConflictError",
                "message": "You have already voted for this position.",
                "details": {}
            }
        }
