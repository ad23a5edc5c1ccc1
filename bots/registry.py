"""Personality registry: maps ``BotPersonality`` members to policy classes.

Usage::

    from bots.registry import get_policy

    policy = get_policy(BotPersonality.MOMENTUM)
    order = policy.decide(ctx)
"""

from __future__ import annotations

from typing import Type

from bots.base import PersonalityPolicy
from models.account import BotPersonality

# ---------------------------------------------------------------------------
# Registry mapping
# ---------------------------------------------------------------------------
_REGISTRY: dict[BotPersonality, Type[PersonalityPolicy]] = {}
_INSTANCES: dict[BotPersonality, PersonalityPolicy] = {}


def register(*personalities: BotPersonality):
    """Decorator to register a ``PersonalityPolicy`` subclass for *personalities*."""

    def _decorator(cls: Type[PersonalityPolicy]) -> Type[PersonalityPolicy]:
        for personality in personalities:
            if personality in _REGISTRY:
                raise ValueError(f"Personality '{personality.value}' is already registered.")
            _REGISTRY[personality] = cls
        return cls

    return _decorator


def get_policy(personality: BotPersonality) -> PersonalityPolicy:
    """Return the (shared, stateless) policy instance for *personality*."""
    _ensure_builtins_loaded()
    if personality not in _INSTANCES:
        _INSTANCES[personality] = _REGISTRY[personality]()
    return _INSTANCES[personality]


def registered_personalities() -> list[BotPersonality]:
    _ensure_builtins_loaded()
    return list(_REGISTRY)


def _ensure_builtins_loaded() -> None:
    """Import built-in personalities and verify every enum member has one."""
    # The import triggers the @register decorators at module level.
    import bots.personalities  # noqa: F401

    missing = [p.value for p in BotPersonality if p not in _REGISTRY]
    if missing:
        raise RuntimeError(f"No policy registered for personality: {', '.join(missing)}.")
