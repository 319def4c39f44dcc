"""Named rate limit policies and the path rules that select them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from recipe_gate.adapters.rate_limit.base import RateLimitPolicy
from recipe_gate.core.config import RateLimitSettings
from recipe_gate.core.errors import ValidationAppError

STRICT = "strict"
WRITE = "write"
READ = "read"
UPLOAD = "upload"

POLICY_NAMES: tuple[str, ...] = (STRICT, WRITE, READ, UPLOAD)


@dataclass(frozen=True)
class PolicyRule:
    """Map a request (path, method) onto a policy name.

    A rule matches when every configured condition holds: the path starts
    with ``prefix``, contains at least one of ``contains``, and the method is
    one of ``methods``. Unset conditions always match.
    """

    policy: str
    prefix: str | None = None
    contains: tuple[str, ...] = ()
    methods: frozenset[str] | None = None

    def matches(self, path: str, method: str) -> bool:
        if self.prefix is not None and not path.startswith(self.prefix):
            return False
        if self.contains and not any(fragment in path for fragment in self.contains):
            return False
        if self.methods is not None and method.upper() not in self.methods:
            return False
        return True


DEFAULT_RULES: tuple[PolicyRule, ...] = (
    PolicyRule(STRICT, prefix="/api/auth"),
    PolicyRule(WRITE, prefix="/api/recipes", methods=frozenset({"POST"})),
    PolicyRule(READ, prefix="/api/recipes", methods=frozenset({"GET"})),
    PolicyRule(UPLOAD, contains=("/upload", "/avatar")),
)


def build_policies(rate_limit_settings: RateLimitSettings) -> dict[str, RateLimitPolicy]:
    """Build the four named presets from settings."""

    cfg = rate_limit_settings
    return {
        STRICT: RateLimitPolicy(STRICT, cfg.strict_interval_ms, cfg.strict_max_requests),
        WRITE: RateLimitPolicy(WRITE, cfg.write_interval_ms, cfg.write_max_requests),
        READ: RateLimitPolicy(READ, cfg.read_interval_ms, cfg.read_max_requests),
        UPLOAD: RateLimitPolicy(UPLOAD, cfg.upload_interval_ms, cfg.upload_max_requests),
    }


def validate_rules(rules: Iterable[PolicyRule], known: Iterable[str]) -> None:
    """Ensure every rule points at a configured policy.

    Raises:
        ValidationAppError: If a rule names an unknown policy.
    """

    known_names = sorted(known)
    for rule in rules:
        if rule.policy not in known_names:
            raise ValidationAppError(
                code="unknown_rate_limit_policy",
                message=f"Rate limit rule references unknown policy '{rule.policy}'",
                details={"policy": rule.policy, "known_policies": known_names},
            )


def resolve_policy(rules: Sequence[PolicyRule], path: str, method: str) -> str | None:
    """Return the policy name of the first matching rule, or None."""

    for rule in rules:
        if rule.matches(path, method):
            return rule.policy
    return None
