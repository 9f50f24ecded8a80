from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from burnafter.config import settings
from burnafter.database import get_db
from burnafter.middleware.rate_limit import limiter
from burnafter.schemas.secret import (
    SecretCreate,
    SecretCreateData,
    SecretCreateResponse,
    SecretNotFoundResponse,
    SecretRetrieveData,
    SecretRetrieveResponse,
)
from burnafter.services.secret_service import SecretService
from burnafter.services.secret_store import SqlSecretStore

router = APIRouter()


def get_secret_service(request: Request, db: Session = Depends(get_db)) -> SecretService:
    """Build the lifecycle service for this request around the process cipher."""
    return SecretService(
        store=SqlSecretStore(db),
        cipher=request.app.state.cipher,
        settings=settings,
    )


@router.post("/secrets", response_model=SecretCreateResponse, status_code=201)
@limiter.shared_limit(settings.rate_limit_secrets, scope="secrets")
async def create_new_secret(
    request: Request,
    secret_data: SecretCreate,
    service: SecretService = Depends(get_secret_service),
):
    """
    Store a new secret.

    The returned URL can be opened exactly once.
    """
    created = service.create(secret_data.content, secret_data.ttl)

    return SecretCreateResponse(
        data=SecretCreateData(
            id=created.public_id,
            url=str(request.url_for("retrieve_secret", secret_id=created.public_id)),
            created_at=created.created_at,
            expires_at=created.expires_at,
        )
    )


@router.get(
    "/secrets/{secret_id}",
    response_model=SecretRetrieveResponse,
    responses={404: {"model": SecretNotFoundResponse}},
    name="retrieve_secret",
)
@limiter.shared_limit(settings.rate_limit_secrets, scope="secrets")
async def retrieve_secret(
    request: Request,
    secret_id: str,
    service: SecretService = Depends(get_secret_service),
):
    """
    Retrieve a secret and permanently delete it.

    Unknown, malformed, expired and already-read ids all return the same 404.
    """
    result = service.retrieve_and_burn(secret_id)
    if result is None:
        return JSONResponse(status_code=404, content=SecretNotFoundResponse().model_dump())

    return SecretRetrieveResponse(
        data=SecretRetrieveData(
            content=result.content,
            created_at=result.created_at,
            expires_at=result.expires_at,
        )
    )
