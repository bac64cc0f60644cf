"""Read-only records for the user logging in and the login context."""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


def _frozen(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class LinkedIdentity:
    connection: str
    provider: str
    user_id: Any
    profile_data: Optional[Mapping[str, Any]] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "LinkedIdentity":
        profile_data = raw.get("profileData")
        return cls(
            connection=raw.get("connection", ""),
            provider=raw.get("provider", ""),
            user_id=raw.get("user_id"),
            profile_data=_frozen(profile_data) if profile_data else None,
        )


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: Optional[str] = None
    email_verified: bool = False
    name: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    nickname: Optional[str] = None
    identities: Tuple[LinkedIdentity, ...] = ()
    user_metadata: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Identity":
        return cls(
            user_id=raw["user_id"],
            email=raw.get("email"),
            email_verified=bool(raw.get("email_verified", False)),
            name=raw.get("name"),
            given_name=raw.get("given_name"),
            family_name=raw.get("family_name"),
            nickname=raw.get("nickname"),
            identities=tuple(LinkedIdentity.from_dict(i) for i in raw.get("identities") or []),
            user_metadata=_frozen(raw.get("user_metadata")),
        )


@dataclass(frozen=True)
class LoginContext:
    connection_strategy: str
    primary_user: Optional[str] = None
    primary_user_metadata: Optional[Mapping[str, Any]] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "LoginContext":
        metadata = raw.get("primaryUserMetadata")
        return cls(
            connection_strategy=raw.get("connectionStrategy", ""),
            primary_user=raw.get("primaryUser"),
            primary_user_metadata=_frozen(metadata) if metadata else None,
        )

    def subject_id(self, identity: Identity) -> str:
        """The linked primary account if there is one, otherwise the user itself."""
        return self.primary_user or identity.user_id

    def metadata(self, identity: Identity) -> Mapping[str, Any]:
        return self.primary_user_metadata or identity.user_metadata or {}
