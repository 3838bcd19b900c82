"""Provider base with settings and an idempotent async lifecycle.

Providers own long-lived resources (an HTTP client session, a listening
server). They are created with a settings model and become usable after
``initialize()``; ``shutdown()`` releases what ``initialize()`` acquired.
"""

import asyncio
import logging
from typing import Generic, TypeVar

from taskbridge.core.errors.errors import ErrorContext, ProviderError
from taskbridge.core.errors.models import ProviderErrorContext
from taskbridge.core.models import StrictBaseModel

logger = logging.getLogger(__name__)


class ProviderSettings(StrictBaseModel):
    """Base settings for providers.

    Provider-specific settings subclass this; it carries no fields itself.
    """


T = TypeVar("T", bound=ProviderSettings)


class Provider(Generic[T]):
    """Base class for all providers.

    Subclasses implement ``_initialize`` and optionally ``_shutdown``.
    ``initialize`` runs ``_initialize`` at most once, even when called
    concurrently.
    """

    def __init__(self, name: str, provider_type: str, settings: T):
        if not name:
            raise ValueError("Provider name must not be empty")
        self.name = name
        self.provider_type = provider_type
        self.settings = settings
        self._initialized = False
        self._setup_lock = asyncio.Lock()
        logger.debug(f"Created provider: {name} ({provider_type})")

    @property
    def initialized(self) -> bool:
        """Check if provider is initialized."""
        return self._initialized

    async def initialize(self) -> None:
        """Initialize the provider once.

        Raises:
            ProviderError: If initialization fails
        """
        if self._initialized:
            return

        async with self._setup_lock:
            if self._initialized:
                return

            try:
                await self._initialize()
                self._initialized = True
                logger.info(f"Provider '{self.name}' initialized successfully")
            except Exception as e:
                logger.error(f"Failed to initialize provider '{self.name}': {str(e)}")
                raise ProviderError(
                    message=f"Failed to initialize provider: {str(e)}",
                    context=self._error_context("initialize"),
                    provider_context=ProviderErrorContext(
                        provider_name=self.name,
                        provider_type=self.provider_type,
                        operation="initialize",
                    ),
                    cause=e,
                ) from e

    async def shutdown(self) -> None:
        """Release provider resources.

        Shutdown errors are logged, not raised, so that shutdown of the
        remaining providers can proceed.
        """
        if not self._initialized:
            return

        try:
            await self._shutdown()
            logger.info(f"Provider '{self.name}' shut down successfully")
        except Exception as e:
            logger.error(f"Error shutting down provider '{self.name}': {str(e)}")
        finally:
            self._initialized = False

    async def _initialize(self) -> None:
        raise NotImplementedError("Subclasses must implement _initialize().")

    async def _shutdown(self) -> None:
        pass

    def _error_context(self, operation: str, tool_name: str = "*") -> ErrorContext:
        return ErrorContext.create(
            tool_name=tool_name,
            error_type="ProviderError",
            error_location=f"{self.__class__.__name__}.{operation}",
            component=self.name,
            operation=operation,
        )

    def _not_initialized_error(self, operation: str, tool_name: str = "*") -> ProviderError:
        return ProviderError(
            message=f"Provider '{self.name}' is not initialized",
            context=self._error_context(operation, tool_name),
            provider_context=ProviderErrorContext(
                provider_name=self.name,
                provider_type=self.provider_type,
                operation=operation,
            ),
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, initialized={self._initialized})"


__all__ = ["Provider", "ProviderSettings"]
