"""
Security policies for the Opportunity Explorer.

Defines the per-operation SecurityConfig, rate limit policies, and a registry
that loads per-environment security profiles from YAML configuration.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

import yaml

from opportunity_explorer.domain.exceptions import ConfigurationError
from opportunity_explorer.domain.models import AuthRequirement, Environment


WINDOW_UNITS: dict[str, int] = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
}

DEFAULT_WINDOW_SECONDS = 60


def parse_window(window: str) -> int:
    """
    Convert a window such as ``"30s"``, ``"1m"``, ``"2h"`` or ``"1d"`` to seconds.

    An unrecognized unit suffix falls back to one minute.

    Raises:
        ValueError: If the unit is known but the count is not an integer
    """
    unit = window[-1:]
    if unit not in WINDOW_UNITS:
        return DEFAULT_WINDOW_SECONDS
    value = window[:-1].strip()
    if not value.isdigit():
        raise ValueError(f"Invalid rate limit window: {window!r}")
    return int(value) * WINDOW_UNITS[unit]


@dataclass(frozen=True)
class RateLimitPolicy:
    """A request quota over a fixed time window."""

    requests: int
    window: str = "1m"

    def __post_init__(self):
        if self.requests <= 0:
            raise ValueError("requests must be positive")
        # Fail at construction rather than on the first request
        parse_window(self.window)

    @property
    def window_seconds(self) -> int:
        return parse_window(self.window)

    def cache_key(self) -> str:
        """Deterministic serialization used to build counter keys."""
        return json.dumps(
            {"requests": self.requests, "window": self.window},
            separators=(",", ":"),
            sort_keys=True,
        )


@dataclass(frozen=True)
class SecurityConfig:
    """
    Static security requirements of one protected operation.

    Attributes:
        auth: Whether a signed-in principal is needed
        admin_only: Restrict the operation to principals with the admin role
        roles: Principal must hold at least one of these roles
        permissions: Principal must hold every one of these permissions
        user_rate_limit: Quota per authenticated principal
        ip_rate_limit: Quota per client IP, applied before authentication
        allowed_origins: CORS allow-list (None disables CORS handling)
        https_only: Reject plain-http requests
    """

    auth: AuthRequirement = AuthRequirement.NONE
    admin_only: bool = False
    roles: frozenset[str] = field(default_factory=frozenset)
    permissions: frozenset[str] = field(default_factory=frozenset)
    user_rate_limit: Optional[RateLimitPolicy] = None
    ip_rate_limit: Optional[RateLimitPolicy] = None
    allowed_origins: Optional[tuple[str, ...]] = None
    https_only: bool = False

    def __post_init__(self):
        # Accept plain lists/sets from callers while keeping the config hashable
        object.__setattr__(self, "roles", frozenset(self.roles))
        object.__setattr__(self, "permissions", frozenset(self.permissions))
        if self.allowed_origins is not None:
            object.__setattr__(self, "allowed_origins", tuple(self.allowed_origins))


@dataclass(frozen=True)
class SecurityProfile:
    """
    Shared security settings for a class of endpoints (public, user, admin).

    Routes derive their SecurityConfig from a profile so origins and quotas
    are changed in one place.
    """

    name: str
    allowed_origins: Optional[tuple[str, ...]] = None
    ip_rate_limit: Optional[RateLimitPolicy] = None
    user_rate_limit: Optional[RateLimitPolicy] = None
    https_only: bool = False

    def to_config(
        self,
        auth: AuthRequirement = AuthRequirement.NONE,
        admin_only: bool = False,
        roles: Iterable[str] = (),
        permissions: Iterable[str] = (),
        limit_users: bool = True,
    ) -> SecurityConfig:
        return SecurityConfig(
            auth=auth,
            admin_only=admin_only,
            roles=frozenset(roles),
            permissions=frozenset(permissions),
            user_rate_limit=self.user_rate_limit if limit_users else None,
            ip_rate_limit=self.ip_rate_limit,
            allowed_origins=self.allowed_origins,
            https_only=self.https_only,
        )


class SecurityProfileRegistry:
    """
    Registry for loading and accessing security profiles.

    Loads the profiles of one environment from a YAML configuration file.
    """

    def __init__(
        self,
        config_path: str = "config/security.yaml",
        environment: Environment = Environment.DEVELOPMENT,
    ):
        self._config_path = config_path
        self._environment = environment
        self._profiles: dict[str, SecurityProfile] = {}
        self._load_profiles()

    @property
    def environment(self) -> Environment:
        return self._environment

    def _load_profiles(self) -> None:
        """Load profiles from YAML file."""
        config_path = Path(self._config_path)

        if not config_path.exists():
            raise ConfigurationError(
                f"Security configuration file not found: {self._config_path}",
                config_key="security_profiles_path",
            )

        try:
            with open(config_path, "r") as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in security configuration: {e}",
                config_key="security_profiles_path",
            )

        env_config = config.get("environments", {}).get(self._environment.value)
        if env_config is None:
            raise ConfigurationError(
                f"No security profiles for environment: {self._environment.value}",
                config_key="environments",
            )

        https_only = bool(env_config.get("https_only", False))

        for name, profile_config in (env_config.get("profiles") or {}).items():
            profile_config = profile_config or {}
            origins = profile_config.get("cors_origins")
            if origins is not None and not isinstance(origins, list):
                raise ConfigurationError(
                    f"Invalid security profile '{name}': cors_origins must be a list",
                    config_key=f"profiles.{name}.cors_origins",
                )
            try:
                profile = SecurityProfile(
                    name=name,
                    allowed_origins=tuple(origins) if origins is not None else None,
                    ip_rate_limit=self._build_rate_limit(profile_config.get("ip_rate_limit")),
                    user_rate_limit=self._build_rate_limit(profile_config.get("user_rate_limit")),
                    https_only=bool(profile_config.get("https_only", https_only)),
                )
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Invalid security profile '{name}': {e}",
                    config_key=f"profiles.{name}",
                )

            self._profiles[name] = profile

    @staticmethod
    def _build_rate_limit(raw: Optional[dict]) -> Optional[RateLimitPolicy]:
        if not raw:
            return None
        return RateLimitPolicy(
            requests=int(raw["requests"]),
            window=str(raw.get("window", "1m")),
        )

    def get_profile(self, name: str) -> SecurityProfile:
        """
        Get the profile with the given name.

        Raises:
            ConfigurationError: If no profile exists with that name
        """
        if name not in self._profiles:
            raise ConfigurationError(
                f"Security profile not found: {name}",
                config_key=f"profiles.{name}",
            )
        return self._profiles[name]

    def get_all_profiles(self) -> dict[str, SecurityProfile]:
        """Get all registered profiles."""
        return self._profiles.copy()

    def reload(self) -> None:
        """Reload profiles from configuration file."""
        self._profiles.clear()
        self._load_profiles()
