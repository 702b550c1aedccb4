from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter

from .config import ClientConfig
from .error_mapper import map_error
from .exceptions import NetworkError

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

Timeout = tuple[float, float]


@dataclass
class LastOperation:
    module: str
    operation: str
    duration_ms: int
    result: str
    request_id: str | None


@dataclass
class HttpClient:
    """Thin JSON transport over a pooled ``requests`` session.

    Every call is a single attempt. Nothing in this layer retries: after an
    ambiguous failure the caller re-reads authoritative state instead.
    """

    config: ClientConfig
    session: requests.Session | None = None
    last_operation: LastOperation | None = None

    def __post_init__(self) -> None:
        if self.session is None:
            self.session = requests.Session()
            adapter = HTTPAdapter(
                pool_connections=self.config.max_connections,
                pool_maxsize=self.config.max_connections,
                max_retries=0,
            )
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)

    def _build_url(self, path: str) -> str:
        base = self.config.api_base_url.rstrip("/") + "/"
        return urljoin(base, path.lstrip("/"))

    def default_timeout(self) -> Timeout:
        return (self.config.connect_timeout_seconds, self.config.read_timeout_seconds)

    def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        timeout: Timeout | None = None,
        module: str = "unknown",
        operation: str = "unknown",
    ) -> dict[str, Any] | list[Any] | None:
        if self.session is None:
            raise RuntimeError("HTTP session not initialized")
        request_id = str(uuid.uuid4())
        request_headers = {"Accept": "application/json", REQUEST_ID_HEADER: request_id}
        if headers:
            request_headers.update(headers)

        normalized_method = method.upper()
        url = self._build_url(path)
        started = time.monotonic()
        try:
            response = self.session.request(
                method=normalized_method,
                url=url,
                headers=request_headers,
                json=json_body,
                params=params,
                timeout=timeout or self.default_timeout(),
                verify=self.config.verify_ssl,
            )
        except requests.Timeout as exc:
            self._record_operation(module, operation, started, "timeout", request_id)
            logger.warning("http_timeout", extra={"operation": operation, "request_id": request_id})
            raise NetworkError(
                code="TIMEOUT",
                message=f"{operation} timed out",
                details={"type": type(exc).__name__},
                request_id=request_id,
                status_code=0,
            ) from exc
        except requests.RequestException as exc:
            self._record_operation(module, operation, started, "network_error", request_id)
            logger.warning("http_network_error", extra={"operation": operation, "request_id": request_id})
            raise NetworkError(
                code="NETWORK_ERROR",
                message=str(exc) or "Network request failed",
                details={"type": type(exc).__name__},
                request_id=request_id,
                status_code=0,
            ) from exc

        request_id = response.headers.get(REQUEST_ID_HEADER) or request_id
        if response.ok:
            self._record_operation(module, operation, started, "success", request_id)
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as exc:
                raise NetworkError(
                    code="INVALID_JSON",
                    message=f"{operation} returned a non-JSON body",
                    details={"status_code": response.status_code},
                    request_id=request_id,
                    status_code=response.status_code,
                ) from exc

        payload: Any
        try:
            payload = response.json()
        except (json.JSONDecodeError, ValueError):
            payload = {"message": response.text}
        self._record_operation(module, operation, started, "error", request_id)
        logger.info(
            "http_error_response",
            extra={"operation": operation, "status_code": response.status_code, "request_id": request_id},
        )
        raise map_error(response.status_code, payload if isinstance(payload, dict) else {}, request_id)

    def _record_operation(self, module: str, operation: str, started: float, result: str, request_id: str | None) -> None:
        self.last_operation = LastOperation(
            module=module,
            operation=operation,
            duration_ms=int((time.monotonic() - started) * 1000),
            result=result,
            request_id=request_id,
        )
