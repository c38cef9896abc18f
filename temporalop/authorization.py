"""Authorization settings for the Temporal server."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta


@dataclass
class JWTKeyProviderSpec:
    key_source_uris: list[str] = field(default_factory=list)
    refresh_interval: timedelta | None = None


@dataclass
class AuthorizationSpec:
    jwt_key_provider: JWTKeyProviderSpec = field(default_factory=JWTKeyProviderSpec)
    permissions_claim_name: str = ""
    authorizer: str = ""
    claim_mapper: str = ""


@dataclass
class AuthorizationConfig:
    jwt_key_source_uris: list[str] = field(default_factory=list)
    jwt_refresh_interval: timedelta = timedelta(0)
    permissions_claim_name: str = ""
    authorizer: str = ""
    claim_mapper: str = ""


def to_temporal_authorization(spec: AuthorizationSpec | None) -> AuthorizationConfig:
    """Turn an authorization spec into server configuration; None gives the empty config."""
    if spec is None:
        return AuthorizationConfig()
    provider = spec.jwt_key_provider
    return AuthorizationConfig(
        jwt_key_source_uris=list(provider.key_source_uris),
        jwt_refresh_interval=provider.refresh_interval or timedelta(0),
        permissions_claim_name=spec.permissions_claim_name,
        authorizer=spec.authorizer,
        claim_mapper=spec.claim_mapper,
    )