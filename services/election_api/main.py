"""
FastAPI application for the election API.

Registers voters, authenticates them, records one vote per voter per position
and serves aggregated results.
"""
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.exceptions import HTTPException as StarletteHTTPException

from services.shared import get_current_timestamp
from .auth import AuthService
from .config import Settings, settings
from .database import Database
from .errors import AuthenticationError, ElectionError, StorageError
from .memory import memory_stores
from .models import (
    BallotListResponse,
    CandidateInfo,
    CandidateListResponse,
    CleanupResponse,
    ErrorResponse,
    HealthResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ResultsResponse,
    SignupRequest,
    SignupResponse,
    VoteRequest,
    VoteResponse,
)
from .results import ResultsAggregator
from .stores import Stores
from .voting import VotingService

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Prometheus metrics
votes_cast = Counter(
    "votes_cast_total",
    "Total number of votes recorded",
    ["position"]
)
vote_rejections = Counter(
    "vote_rejections_total",
    "Total number of rejected votes",
    ["reason"]
)
signups = Counter(
    "signups_total",
    "Total number of registered voters"
)
login_attempts = Counter(
    "login_attempts_total",
    "Total number of login attempts",
    ["outcome"]
)
request_errors = Counter(
    "request_errors_total",
    "Total number of unexpected request errors",
    ["error_type"]
)
request_duration = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"]
)

INTERNAL_ERROR = "Internal Server Error"

# votes_cast_total label for positions no candidate contests
UNREGISTERED_POSITION = "unregistered"


@dataclass
class Services:
    """Service instances shared by all requests."""
    auth: AuthService
    voting: VotingService
    results: ResultsAggregator
    database: Optional[Database] = None


def build_services(
    stores: Stores,
    app_settings: Settings = settings,
    database: Optional[Database] = None
) -> Services:
    """Wire the services to their stores."""
    return Services(
        auth=AuthService(stores.voters, rounds=app_settings.BCRYPT_ROUNDS),
        voting=VotingService(
            stores.ballots,
            stores.candidates,
            stores.voters,
            strict=app_settings.STRICT_VOTE_VALIDATION
        ),
        results=ResultsAggregator(stores.ballots, stores.candidates),
        database=database,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


router = APIRouter()


@router.get("/", response_model=MessageResponse)
async def root() -> MessageResponse:
    """Root endpoint."""
    return MessageResponse(message="Welcome to the Election API!")


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Missing fields or duplicate matric number"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)
async def signup(
    payload: SignupRequest,
    services: Services = Depends(get_services)
) -> SignupResponse:
    """
    Register a voter.

    - **matricNumber**, **fullName**, **password**: required
    - **department**, **faculty**, **hallOfResidence**, **level**: optional

    Returns the stored voter without the password.
    """
    try:
        user = await services.auth.register(
            payload.matric_number,
            payload.full_name,
            payload.password,
            department=payload.department,
            faculty=payload.faculty,
            hall_of_residence=payload.hall_of_residence,
            level=payload.level,
        )
        signups.inc()
        return SignupResponse(user=user)

    except ElectionError:
        raise
    except Exception as e:
        request_errors.labels(error_type="signup").inc()
        logger.error(f"Error registering voter: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR
        )


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)
async def login(
    payload: LoginRequest,
    services: Services = Depends(get_services)
) -> LoginResponse:
    """Check a voter's matric number and password."""
    try:
        user = await services.auth.authenticate(payload.matric_number, payload.password)
        login_attempts.labels(outcome="success").inc()
        return LoginResponse(user=user)

    except ElectionError as e:
        login_attempts.labels(outcome=type(e).__name__).inc()
        raise
    except Exception as e:
        request_errors.labels(error_type="login").inc()
        logger.error(f"Error authenticating voter: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR
        )


@router.post(
    "/vote",
    response_model=VoteResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing fields or position already voted"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)
async def cast_vote(
    payload: VoteRequest,
    services: Services = Depends(get_services)
) -> VoteResponse:
    """
    Record a vote.

    - **userId**: voter's matric number
    - **candidateId**: chosen candidate
    - **position**: position being voted on

    Returns every choice the voter has made so far.
    """
    try:
        valid_positions = await services.results.valid_positions()
        votes = await services.voting.cast_vote(
            payload.user_id, payload.candidate_id, payload.position
        )
        votes_cast.labels(
            position=payload.position if payload.position in valid_positions else UNREGISTERED_POSITION
        ).inc()
        return VoteResponse(votes=votes)

    except ElectionError as e:
        vote_rejections.labels(reason=type(e).__name__).inc()
        raise
    except Exception as e:
        request_errors.labels(error_type="vote").inc()
        logger.error(f"Error recording vote: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR
        )


@router.get(
    "/vote/{matric_number:path}",
    response_model=Dict[str, str],
    responses={
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)
async def get_ballot(
    matric_number: str,
    services: Services = Depends(get_services)
) -> Dict[str, str]:
    """Get a voter's choices. Empty object if they have not voted."""
    try:
        return await services.voting.get_ballot(matric_number)

    except ElectionError:
        raise
    except Exception as e:
        request_errors.labels(error_type="ballot").inc()
        logger.error(f"Error getting ballot for {matric_number}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR
        )


@router.get(
    "/votes",
    response_model=BallotListResponse,
    responses={
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)
async def list_ballots(services: Services = Depends(get_services)) -> BallotListResponse:
    """List every ballot with the voter's matric number and name."""
    try:
        ballots = await services.voting.list_ballots()
        return BallotListResponse(votes=ballots)

    except ElectionError:
        raise
    except Exception as e:
        request_errors.labels(error_type="ballots").inc()
        logger.error(f"Error listing ballots: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR
        )


@router.get(
    "/candidates",
    response_model=CandidateListResponse,
    responses={
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)
async def list_candidates(services: Services = Depends(get_services)) -> CandidateListResponse:
    """List registered candidates."""
    try:
        candidates = await services.results.list_candidates()
        return CandidateListResponse(
            candidates=[CandidateInfo(**c.to_dict()) for c in candidates]
        )

    except ElectionError:
        raise
    except Exception as e:
        request_errors.labels(error_type="candidates").inc()
        logger.error(f"Error listing candidates: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR
        )


@router.get(
    "/results",
    response_model=ResultsResponse,
    responses={
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)
async def get_results(services: Services = Depends(get_services)) -> ResultsResponse:
    """
    Get vote counts per position per candidate.

    Positions that no registered candidate contests are left out.
    """
    try:
        results = await services.results.compute_results()
        return ResultsResponse(results=results)

    except ElectionError:
        raise
    except Exception as e:
        request_errors.labels(error_type="results").inc()
        logger.error(f"Error computing results: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR
        )


@router.delete(
    "/cleanup-invalid-votes",
    response_model=CleanupResponse,
    responses={
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)
async def cleanup_invalid_votes(services: Services = Depends(get_services)) -> CleanupResponse:
    """Strip ballot entries for positions no candidate contests."""
    try:
        modified = await services.results.cleanup_invalid_votes()
        return CleanupResponse(
            message=f"Invalid votes cleaned up from {modified} ballot(s).",
            modified_count=modified
        )

    except ElectionError:
        raise
    except Exception as e:
        request_errors.labels(error_type="cleanup").inc()
        logger.error(f"Error cleaning up invalid votes: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR
        )


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        503: {"model": HealthResponse, "description": "Service unhealthy"}
    }
)
async def health_check(services: Services = Depends(get_services)) -> JSONResponse:
    """Check health of the service and its store."""
    service_status = {}

    if services.database is None:
        service_status["storage"] = "connected"
    else:
        try:
            postgres_healthy = await services.database.check_health()
            service_status["postgresql"] = "connected" if postgres_healthy else "disconnected"
        except Exception as e:
            logger.error(f"PostgreSQL health check error: {e}")
            service_status["postgresql"] = "error"

    all_healthy = all(s == "connected" for s in service_status.values())
    response = HealthResponse(
        status="healthy" if all_healthy else "unhealthy",
        services=service_status,
        timestamp=get_current_timestamp()
    )

    return JSONResponse(
        status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(mode="json")
    )


@router.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def _error_response(status_code: int, error: str, message: str, details: Optional[dict] = None) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, details=details or {})
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def election_error_handler(request: Request, exc: ElectionError) -> JSONResponse:
    if isinstance(exc, StorageError):
        logger.error(f"Storage error on {request.method} {request.url.path}: {exc.message}")
    return _error_response(exc.status_code, type(exc).__name__, exc.message)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, "HTTPException", str(exc.detail))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    if request.url.path == "/login":
        # Unparseable credentials fail like any other bad login
        login_attempts.labels(outcome=AuthenticationError.__name__).inc()
        error = AuthenticationError()
        return _error_response(error.status_code, type(error).__name__, error.message)
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "ValidationError",
        "Invalid request body",
        {"errors": jsonable_encoder(exc.errors())}
    )


def create_app(stores: Optional[Stores] = None, app_settings: Settings = settings) -> FastAPI:
    """
    Build the application.

    Args:
        stores: Pre-built stores. When given, the lifespan does not open any
            database connection (used by tests and embedding callers).
        app_settings: Settings to wire the services with
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown events."""
        logger.info(f"Starting {app_settings.SERVICE_NAME} service...")
        database = None

        if getattr(app.state, "services", None) is None:
            try:
                if app_settings.STORAGE_BACKEND == "memory":
                    logger.warning("Using in-memory storage; data is lost on restart")
                    app.state.services = build_services(memory_stores(), app_settings)
                else:
                    database = Database(app_settings.postgres_dsn)
                    await database.initialize()
                    app.state.services = build_services(
                        database.stores(), app_settings, database=database
                    )
                logger.info(f"{app_settings.SERVICE_NAME} started successfully")

            except Exception as e:
                logger.error(f"Failed to start {app_settings.SERVICE_NAME}: {e}")
                raise

        yield

        logger.info(f"Shutting down {app_settings.SERVICE_NAME} service...")
        if database is not None:
            await database.close()
            app.state.services = None

    app = FastAPI(
        title="Election API",
        description="API for voter registration, voting and results",
        version=app_settings.API_VERSION,
        lifespan=lifespan
    )

    if stores is not None:
        app.state.services = build_services(stores, app_settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS,
        allow_credentials=app_settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=app_settings.CORS_ALLOW_METHODS,
        allow_headers=app_settings.CORS_ALLOW_HEADERS,
    )

    @app.middleware("http")
    async def prometheus_middleware(request: Request, call_next):
        """Middleware to track request duration."""
        start = time.perf_counter()
        response = await call_next(request)

        route = request.scope.get("route")
        request_duration.labels(
            method=request.method,
            endpoint=route.path if route else "unmatched",
            status=response.status_code
        ).observe(time.perf_counter() - start)

        return response

    app.add_exception_handler(ElectionError, election_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.election_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
