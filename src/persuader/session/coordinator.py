"""
Session coordinator.

Resolves the session a pipeline run uses before any attempt is made:
- an explicit ``session_id`` is reused as-is
- a provider without session support runs stateless
- otherwise a new provider session is created from the run's context

Failures surface as ``SessionCoordinationError`` wrapping a non-retryable
``ProviderError``; the orchestrator turns it into a failed result with zero
attempts.
"""

from typing import Optional

import structlog

from persuader.llm.base_client import ProviderAdapter
from persuader.models.errors import ProviderError
from persuader.models.llm_models import ProviderSessionOptions
from persuader.models.session import Session
from persuader.session.store import SessionStore

logger = structlog.get_logger(__name__)

DEFAULT_SESSION_CONTEXT = "You are a helpful assistant that returns structured JSON data."


class SessionCoordinationError(Exception):
    """Session could not be resolved; carries the error to report."""

    def __init__(self, error: ProviderError):
        self.error = error
        super().__init__(error.message)


async def coordinate_session(
    provider: ProviderAdapter,
    store: Optional[SessionStore] = None,
    *,
    session_id: Optional[str] = None,
    context: Optional[str] = None,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
) -> Optional[str]:
    """
    Resolve the session id for a pipeline run.

    Args:
        provider: Provider adapter for the run
        store: Store that receives a record for newly created sessions
        session_id: Existing session to reuse
        context: Context the new session is primed with
        model: Model recorded on the provider session
        temperature: Temperature recorded on the provider session

    Returns:
        Session id, or None for a stateless run

    Raises:
        SessionCoordinationError: The provider failed to create a session
    """
    if session_id:
        logger.debug("Reusing existing session", session_id=session_id, provider=provider.name)
        return session_id

    if not provider.supports_session:
        logger.debug("Provider has no session support, running stateless", provider=provider.name)
        return None

    session_context = context or DEFAULT_SESSION_CONTEXT
    try:
        new_session_id = await provider.create_session(
            session_context,
            ProviderSessionOptions(model=model, temperature=temperature),
        )
    except NotImplementedError as e:
        raise SessionCoordinationError(
            ProviderError(
                code="session_not_supported",
                message=f"Provider {provider.name} advertises sessions but cannot create them",
                provider=provider.name,
                retryable=False,
                details={"error": str(e)},
            )
        ) from e
    except Exception as e:
        logger.error("Session creation failed", provider=provider.name, error=str(e))
        raise SessionCoordinationError(
            ProviderError(
                code="session_creation_failed",
                message=f"Failed to create session: {e}",
                provider=provider.name,
                retryable=False,
                details={"error_type": type(e).__name__},
            )
        ) from e

    if store is not None:
        await store.set(
            Session(id=new_session_id, provider=provider.name, context=session_context)
        )

    logger.info("Session created", session_id=new_session_id, provider=provider.name)
    return new_session_id
