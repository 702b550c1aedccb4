from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import DeserializationError
from ..http_client import HttpClient

M = TypeVar("M", bound=BaseModel)


@dataclass
class BaseClient:
    http: HttpClient
    access_token: str | None = None

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def _request(self, method: str, path: str, **kwargs: Any):
        headers = kwargs.pop("headers", {})
        merged = {**self._auth_headers(), **headers}
        return self.http.request(method, path, headers=merged, **kwargs)

    def _parse(self, data: Any, model_type: type[M], operation: str) -> M:
        if not isinstance(data, dict):
            raise self._bad_payload(operation, f"expected a JSON object, got {type(data).__name__}")
        try:
            return model_type.model_validate(data)
        except PydanticValidationError as exc:
            raise self._bad_payload(operation, str(exc)) from exc

    def _bad_payload(self, operation: str, reason: str) -> DeserializationError:
        last = self.http.last_operation
        return DeserializationError(
            code="INVALID_RESPONSE",
            message=f"Unexpected {operation} response",
            details={"reason": reason},
            request_id=last.request_id if last else None,
            status_code=200,
        )
