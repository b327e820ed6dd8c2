"""
Shared adapter interface, HTTP plumbing and the masking decorator.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar

import httpx
import structlog

from solarlens.exceptions import AdapterUnavailable

logger = structlog.get_logger(__name__)

P = TypeVar("P")
T = TypeVar("T")

SOURCE_LIVE = "live"
SOURCE_OFFLINE = "offline"


@dataclass
class AdapterResponse(Generic[T]):
    """
    Result of one adapter call.

    ``data`` is always populated with the adapter's schema. ``source`` says
    whether it came from the live service or the offline generator, and
    ``error`` carries the masked failure, if any.
    """

    success: bool
    data: T
    source: str
    error: Optional[str] = None

    @property
    def masked(self) -> bool:
        return self.error is not None

    def provenance(self) -> Dict[str, Any]:
        return {"source": self.source, "error": self.error}


class EstimationAdapter(ABC, Generic[P, T]):
    """A single estimation capability."""

    service_name: str

    @abstractmethod
    async def call(self, params: P) -> AdapterResponse[T]:
        """Estimate for the given parameters."""
        pass


class OfflineAdapter(EstimationAdapter[P, T]):
    """Deterministic generator that mirrors a live service's schema."""

    async def call(self, params: P) -> AdapterResponse[T]:
        return AdapterResponse(success=True, data=self.generate(params), source=SOURCE_OFFLINE)

    @abstractmethod
    def generate(self, params: P) -> T:
        pass


class HttpEstimationAdapter(EstimationAdapter[P, T]):
    """
    Live adapter backed by a JSON HTTP API.

    Any transport error, non-2xx status or undecodable body is raised as
    ``AdapterUnavailable``. Pass ``client`` to reuse a connection pool (tests
    pass one with a mock transport).
    """

    def __init__(self, base_url: str, api_key: str, timeout: float, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    async def call(self, params: P) -> AdapterResponse[T]:
        payload = await self.fetch(params)
        try:
            data = self.parse(payload, params)
        except (KeyError, TypeError, ValueError, IndexError) as e:
            raise AdapterUnavailable(self.service_name, f"Malformed {self.service_name} response: {e}") from e
        return AdapterResponse(success=True, data=data, source=SOURCE_LIVE)

    @abstractmethod
    async def fetch(self, params: P) -> Dict[str, Any]:
        pass

    @abstractmethod
    def parse(self, payload: Dict[str, Any], params: P) -> T:
        pass

    async def _get_json(
        self,
        path: str,
        query: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            if self._client is not None:
                response = await self._client.get(url, params=query, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, params=query, headers=headers)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            raise AdapterUnavailable(self.service_name, f"{self.service_name} request timed out") from e
        except httpx.HTTPStatusError as e:
            raise AdapterUnavailable(
                self.service_name,
                f"{self.service_name} returned HTTP {e.response.status_code}",
            ) from e
        except httpx.RequestError as e:
            raise AdapterUnavailable(self.service_name, f"{self.service_name} request failed: {e}") from e
        except ValueError as e:
            raise AdapterUnavailable(self.service_name, f"{self.service_name} returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise AdapterUnavailable(self.service_name, f"{self.service_name} returned an unexpected payload")
        return payload


class MaskingAdapter(EstimationAdapter[P, T]):
    """
    Prefer the live adapter, fall back to the offline one.

    Live failures never reach the caller: they are logged and the offline
    data is returned with ``success=True`` and the failure in ``error``.
    Without a live adapter (no credentials) the offline data is used directly.
    """

    def __init__(self, offline: OfflineAdapter[P, T], live: Optional[EstimationAdapter[P, T]] = None):
        self.offline = offline
        self.live = live
        self.service_name = offline.service_name

    async def call(self, params: P) -> AdapterResponse[T]:
        if self.live is None:
            logger.info("estimation_using_offline_data", service=self.service_name, reason="not_configured")
            return await self.offline.call(params)

        try:
            return await self.live.call(params)
        except AdapterUnavailable as e:
            error = e.message
        except Exception as e:
            error = f"{type(e).__name__}: {e}"

        logger.warning("estimation_service_masked", service=self.service_name, error=error)
        response = await self.offline.call(params)
        response.error = error
        return response
