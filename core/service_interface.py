from abc import ABC, abstractmethod
from typing import Any, Dict


class BaseService(ABC):
    """Base interface for long-lived services with an explicit lifecycle."""

    @abstractmethod
    async def open(self) -> None:
        """Acquire the resources the service needs."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release every resource held by the service."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of the service."""
        pass

    @property
    def is_open(self) -> bool:
        """Check if the service has been opened."""
        return getattr(self, '_opened', False)

    def get_service_health(self) -> Dict[str, Any]:
        """
        Get the health status of this service.

        Returns:
            Dict with health information including:
            - status: 'healthy' or 'unhealthy'
            - details: Additional information about the service health
            - metrics: Optional service-specific metrics
        """
        return {
            'status': 'healthy' if self.is_open else 'unhealthy',
            'details': 'Service is open' if self.is_open else 'Service is not open',
            'metrics': {}
        }

    async def __aenter__(self):
        """Async context manager entry."""
        if not self.is_open:
            await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
