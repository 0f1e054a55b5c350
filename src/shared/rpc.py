"""Request/response calls to sibling services with a deadline and bounded retries.

The client retries transport failures only. A TypedError coming back from
the remote side is a business answer and is re-raised on the first attempt.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Any

import requests
import structlog

from shared.errors import ErrorCode, MessageKey, TypedError, UnavailableError

logger = structlog.get_logger(__name__)

TIMEOUT_MS_DEFAULT = 3000
RETRIES_DEFAULT = 0
DELAY_MS_DEFAULT = 500


class RpcPattern(Enum):
    GET_ORDER_BY_ID = "get_order_by_id"
    GET_ALL_ADMINS = "get_all_admins"


class ServiceName(Enum):
    ORDER_SERVICE = "order-service"
    USER_SERVICE = "user-service"


class RpcTimeoutError(UnavailableError):
    """The remote side did not answer before the deadline."""


class RpcTransportError(UnavailableError):
    """The remote side could not be reached."""


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------
class RpcTransport(ABC):
    @abstractmethod
    def send(self, service: str, pattern: str, payload: dict, timeout: float) -> Any:
        """Send one request and return the decoded response.

        Must raise RpcTimeoutError / RpcTransportError for transport failures
        and TypedError for application errors reported by the remote side.
        """
        ...


class HttpRpcTransport(RpcTransport):
    """Sends RPC requests as ``POST {base_url}/rpc/{pattern}``."""

    def __init__(self, base_urls: dict[str, str], session: requests.Session | None = None) -> None:
        self.base_urls = base_urls
        self.session = session or requests.Session()

    def send(self, service: str, pattern: str, payload: dict, timeout: float) -> Any:
        base_url = self.base_urls.get(service)
        if not base_url:
            raise RpcTransportError(f"No address configured for service '{service}'")

        try:
            response = self.session.post(f"{base_url.rstrip('/')}/rpc/{pattern}", json=payload, timeout=timeout)
        except requests.Timeout as exc:
            raise RpcTimeoutError(f"{service}.{pattern} timed out after {timeout}s") from exc
        except requests.ConnectionError as exc:
            raise RpcTransportError(f"{service} unreachable: {exc}") from exc

        if response.status_code in (502, 503, 504):
            raise RpcTransportError(f"{service} answered {response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise RpcTransportError(f"{service} returned a non-JSON body") from exc

        if response.status_code >= 400:
            raise TypedError.from_dict(body if isinstance(body, dict) else {})
        return body


class LocalRpcTransport(RpcTransport):
    """In-process transport dispatching to registered handlers."""

    def __init__(self) -> None:
        self._handlers: dict[tuple[str, str], Callable[[dict], Any]] = {}

    def register(self, service: str, pattern: str, handler: Callable[[dict], Any]) -> None:
        self._handlers[(service, pattern)] = handler

    def send(self, service: str, pattern: str, payload: dict, timeout: float) -> Any:  # noqa: ARG002
        handler = self._handlers.get((service, pattern))
        if handler is None:
            raise RpcTransportError(f"No handler for {service}.{pattern}")
        return handler(payload)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------
class RpcClient:
    def __init__(
        self,
        transport: RpcTransport,
        timeout_ms: int = TIMEOUT_MS_DEFAULT,
        retries: int = RETRIES_DEFAULT,
        delay_ms: int = DELAY_MS_DEFAULT,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.transport = transport
        self.timeout_ms = timeout_ms
        self.retries = retries
        self.delay_ms = delay_ms
        self._sleep = sleep

    def call(
        self,
        pattern: RpcPattern | str,
        payload: dict,
        service: ServiceName | str,
        timeout_ms: int | None = None,
        retries: int | None = None,
        fallback: Callable[[], Any] | None = None,
    ) -> Any:
        """Call ``pattern`` on ``service`` and return its response."""
        pattern = pattern.value if isinstance(pattern, RpcPattern) else pattern
        service = service.value if isinstance(service, ServiceName) else service
        timeout_ms = self.timeout_ms if timeout_ms is None else timeout_ms
        retries = self.retries if retries is None else retries

        attempts = max(retries, 0) + 1
        for attempt in range(1, attempts + 1):
            try:
                return self.transport.send(service, pattern, payload, timeout=timeout_ms / 1000)
            except TypedError:
                raise
            except (RpcTimeoutError, RpcTransportError) as exc:
                logger.warning(
                    "RPC attempt failed",
                    service=service,
                    pattern=pattern,
                    attempt=attempt,
                    attempts=attempts,
                    error=str(exc),
                )
                if attempt < attempts:
                    self._sleep(self.delay_ms / 1000)
            except Exception as exc:
                logger.error(
                    "RPC call raised an unexpected error",
                    service=service,
                    pattern=pattern,
                    error=str(exc),
                    exc_info=exc,
                )
                raise TypedError(ErrorCode.INTERNAL_SERVER_ERROR, MessageKey.INTERNAL_SERVER_ERROR) from exc

        if fallback is not None:
            result = fallback()
            if result is not None:
                logger.warning("RPC retries exhausted, using fallback", service=service, pattern=pattern)
                return result

        logger.error("RPC retries exhausted", service=service, pattern=pattern, attempts=attempts)
        raise TypedError(ErrorCode.SERVICE_UNAVAILABLE, MessageKey.SERVICE_UNAVAILABLE)
