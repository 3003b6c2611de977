"""Recording of default values substituted for absent optional settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

__all__ = ["Substitution", "DefaultRecorder"]

T = TypeVar("T")


@dataclass(frozen=True)
class Substitution:
    """A default value put in place of an absent or unsupported setting."""

    domain: str
    field: str
    value: Any


@dataclass
class DefaultRecorder:
    """Collects the substitutions made during one validation pass."""

    substitutions: list[Substitution] = field(default_factory=list)

    def substitute(
        self,
        domain: str,
        field_name: str,
        value: T,
        *,
        reason: str = "no value set",
        level: int = logging.INFO,
    ) -> T:
        """Record a substitution, log it, and return ``value``."""
        logger.log(
            level, "%s for %s.%s, setting default value %r", reason, domain, field_name, value
        )
        self.substitutions.append(Substitution(domain, field_name, value))
        return value

    def fields(self) -> list[str]:
        return [f"{s.domain}.{s.field}" for s in self.substitutions]
