from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, field_validator


@dataclass(frozen=True)
class OperatorIdentity:
    """The user on whose behalf a core operation runs.

    Passed explicitly into every operation that talks to the backend or records
    who did something; the SDK keeps no global "current user".
    """

    user_id: str
    name: str
    access_token: str | None = None

    @property
    def display_name(self) -> str:
        return self.name.strip() or self.user_id


class AdminValidationResponse(BaseModel):
    """Deserializer for ``POST /auth/validate-admin``.

    ``valid`` defaults to False: a body without the flag never authorizes.
    """

    model_config = ConfigDict(extra="allow")

    valid: bool = False

    @field_validator("valid", mode="before")
    @classmethod
    def _strict_true(cls, value: object) -> bool:
        return value is True


class RoleRef(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int | str | None = None
    name: str | None = None


class UserProfile(BaseModel):
    """Deserializer for ``GET /auth/me``.

    ``role`` may arrive as a nested object or a bare name; a missing role stays
    None and is treated as a seller by the role gate.
    """

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    name: str | None = None
    email: str | None = None
    role: RoleRef | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: object) -> object:
        return str(value) if isinstance(value, int) else value

    @field_validator("role", mode="before")
    @classmethod
    def _role_from_name(cls, value: object) -> object:
        if isinstance(value, str):
            return {"name": value}
        return value

    @property
    def role_name(self) -> str | None:
        if self.role is None or not self.role.name:
            return None
        return self.role.name.strip().lower()


class PaymentMethod(BaseModel):
    """Deserializer for an entry of ``GET /catalogs/payment-methods``."""

    model_config = ConfigDict(extra="allow")

    id: int | str
    name: str = ""
    category: str | None = None

    def is_cash(self, cash_method_names: tuple[str, ...] = ("efectivo", "cash")) -> bool:
        if self.category:
            return self.category.strip().lower() == "cash"
        return self.name.strip().lower() in cash_method_names

