from typing import Annotated, AsyncGenerator

from fastapi import Depends, Header, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.constants import GEMINI_KEY_HEADER
from src.api.core.exceptions.base import PracticeAPIException
from src.api.core.messages import MessageCode
from src.core.context import AuthenticatedUserContext
from src.modules.audio.synthesizer import AudioSynthesisPipeline
from src.modules.billing.credits.service import CreditLedgerService
from src.modules.generation.infrastructure.gemini_client import (
    GeminiClient,
    get_gemini_client,
)
from src.modules.generation.orchestrator import GenerationOrchestrator
from src.modules.keys.pool import ApiKeyPoolRepository
from src.modules.keys.provider import KeyProvider
from src.modules.keys.secrets import UserSecretRepository
from src.utils.settings.security import SecuritySettings


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session from app state."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


async def get_key_pool(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiKeyPoolRepository:
    return ApiKeyPoolRepository(db)


async def get_key_provider(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    pool: Annotated[ApiKeyPoolRepository, Depends(get_key_pool)],
) -> KeyProvider:
    """Get key provider bound to the request's database session."""
    return KeyProvider(
        secrets=UserSecretRepository(db),
        pool=pool,
        encryption_key=SecuritySettings().APP_ENCRYPTION_KEY,
    )


async def get_orchestrator(
    client: Annotated[GeminiClient, Depends(get_gemini_client)],
    pool: Annotated[ApiKeyPoolRepository, Depends(get_key_pool)],
) -> GenerationOrchestrator:
    return GenerationOrchestrator(client, key_pool=pool)


async def get_audio_pipeline(
    client: Annotated[GeminiClient, Depends(get_gemini_client)],
    pool: Annotated[ApiKeyPoolRepository, Depends(get_key_pool)],
) -> AudioSynthesisPipeline:
    return AudioSynthesisPipeline(client, key_pool=pool)


async def get_credit_ledger(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> CreditLedgerService:
    return CreditLedgerService(db)


async def get_header_api_key(
    x_gemini_api_key: Annotated[str | None, Header(alias=GEMINI_KEY_HEADER)] = None,
) -> str | None:
    """User-supplied Gemini key sent alongside the request, if any."""
    return x_gemini_api_key


async def get_current_user_authenticated(request: Request) -> AuthenticatedUserContext:
    """Dependency to get current authenticated user.

    Assumes auth middleware has properly set request.state.user.
    """
    user = getattr(request.state, "user", None)
    if user is None:
        raise PracticeAPIException(MessageCode.AUTH_REQUIRED, status.HTTP_401_UNAUTHORIZED)
    return user


AsyncSessionDep = Annotated[AsyncSession, Depends(get_db_session)]
GeminiClientDep = Annotated[GeminiClient, Depends(get_gemini_client)]
KeyProviderDep = Annotated[KeyProvider, Depends(get_key_provider)]
OrchestratorDep = Annotated[GenerationOrchestrator, Depends(get_orchestrator)]
AudioPipelineDep = Annotated[AudioSynthesisPipeline, Depends(get_audio_pipeline)]
CreditLedgerDep = Annotated[CreditLedgerService, Depends(get_credit_ledger)]
HeaderApiKeyDep = Annotated[str | None, Depends(get_header_api_key)]

CurrentUserAuthDep = Annotated[
    AuthenticatedUserContext, Depends(get_current_user_authenticated)
]
