from __future__ import annotations

import logging
from dataclasses import dataclass

from ..models import AdminValidationResponse, OperatorIdentity, UserProfile
from .base import BaseClient

logger = logging.getLogger(__name__)


@dataclass
class AuthValidationClient(BaseClient):
    """Credential check for stock overrides and the caller's own profile."""

    def validate_admin(self, identity: str, credential: str) -> AdminValidationResponse:
        # The pair is forwarded untouched; trimming or case-folding is the backend's call.
        payload = {"username": identity, "password": credential}
        timeout = (
            self.http.config.connect_timeout_seconds,
            self.http.config.admin_validation_timeout_seconds,
        )
        data = self._request(
            "POST",
            "/auth/validate-admin",
            json_body=payload,
            timeout=timeout,
            module="auth",
            operation="validate_admin",
        )
        return self._parse(data, AdminValidationResponse, "validate admin")

    def me(self) -> UserProfile:
        data = self._request("GET", "/auth/me", module="auth", operation="me")
        return self._parse(data, UserProfile, "profile")


@dataclass
class RolePermissionClient(BaseClient):
    seller_role_names: tuple[str, ...] = ("seller", "vendedor")

    def is_non_seller(self, identity: OperatorIdentity) -> bool:
        token = identity.access_token or self.access_token
        profile = AuthValidationClient(http=self.http, access_token=token).me()
        role = profile.role_name
        allowed = role is not None and role not in self.seller_role_names
        logger.info("role_check", extra={"user_id": identity.user_id, "role": role, "allowed": allowed})
        return allowed
