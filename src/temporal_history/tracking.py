"""Attach history tracking to a mapped model."""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass
from typing import Any, Mapping

from sqlalchemy.orm import Session

from .archiver import Archiver
from .config import HistoryOptions, resolve_options
from .errors import ErrorCategory, codes, registration_error
from .guard import ReadOnlyGuard
from .interceptor import LifecycleInterceptor
from .logging import log_context
from .policy import ArchivePolicy, policy_for
from .schema import build_history_model, tracked_table

logger = logging.getLogger(__name__)

TRACKER_ATTRIBUTE = "__history__"
HISTORY_MODEL_ATTRIBUTE = "__history_model__"

_TRACKED: "weakref.WeakSet[type]" = weakref.WeakSet()


@dataclass(frozen=True)
class HistoryTracker:
    """Everything wired up for one tracked model."""

    model: type
    history_model: type
    options: HistoryOptions
    policy: ArchivePolicy
    archiver: Archiver
    interceptor: LifecycleInterceptor
    guard: ReadOnlyGuard


def attach_history(
    model: type,
    base: Any,
    options: HistoryOptions | Mapping[str, Any] | None = None,
    *,
    session_target: Any = Session,
    **overrides: Any,
) -> type:
    """Track every change of ``model`` in a derived, read-only history model.

    Args:
        model: Declaratively mapped class to track.
        base: Declarative base whose registry and metadata receive the history
            model and table.
        options: ``HistoryOptions`` or a mapping using either the camelCase
            aliases (``modelSuffix``) or field names (``model_suffix``).
        session_target: ``Session`` class, subclass or ``sessionmaker`` that
            receives the session-level listeners (bulk statements, the
            read-only flush check, pending-state cleanup). The default puts
            them on ``Session`` itself, process-wide, until
            ``detach_history`` removes them.
        **overrides: Individual option overrides.

    Returns:
        ``model`` itself, with ``__history__`` (the tracker) and
        ``__history_model__`` (the history class) set.

    Raises:
        HistoryRegistrationError: Invalid options, name collisions, unsupported
            mappings, or a model that is already tracked.
    """
    if TRACKER_ATTRIBUTE in vars(model):
        raise registration_error(
            f"{model.__name__} already has history attached",
            code=codes.HISTORY_ALREADY_ATTACHED,
            metadata={"model": model.__name__},
        )

    resolved = resolve_options(options, **overrides)
    history_model = build_history_model(model, base, resolved)
    policy = policy_for(resolved)
    archiver = Archiver(tracked_table(model), history_model.__table__, resolved, policy)

    interceptor = LifecycleInterceptor(model, history_model, archiver, resolved)
    interceptor.install(session_target)
    guard = ReadOnlyGuard(history_model)
    guard.install(session_target)

    tracker = HistoryTracker(
        model=model,
        history_model=history_model,
        options=resolved,
        policy=policy,
        archiver=archiver,
        interceptor=interceptor,
        guard=guard,
    )
    setattr(model, TRACKER_ATTRIBUTE, tracker)
    setattr(model, HISTORY_MODEL_ATTRIBUTE, history_model)

    _TRACKED.add(model)

    with log_context(
        entity=model.__name__, history_model=history_model.__name__, mode=policy.name
    ):
        logger.info(
            "History attached to %s as %s (%s mode).",
            model.__name__,
            history_model.__name__,
            policy.name,
        )
    return model


def detach_history(model: type) -> None:
    """Stop tracking ``model`` and lift the read-only guard on its history.

    Every listener ``attach_history`` registered is removed. The history class
    stays mapped and its table stays in the metadata, so archived rows remain
    queryable; the model cannot be attached again on the same base.
    """
    tracker = tracker_for(model)
    tracker.interceptor.uninstall()
    tracker.guard.uninstall()
    delattr(model, TRACKER_ATTRIBUTE)
    delattr(model, HISTORY_MODEL_ATTRIBUTE)
    _TRACKED.discard(model)
    logger.info("History detached from %s.", model.__name__)


def tracked_models() -> tuple[type, ...]:
    """Return the models that currently have history attached."""
    return tuple(_TRACKED)


def tracker_for(model: type) -> HistoryTracker:
    """Return the tracker attached to ``model``."""
    tracker = vars(model).get(TRACKER_ATTRIBUTE)
    if not isinstance(tracker, HistoryTracker):
        raise registration_error(
            f"{getattr(model, '__name__', model)!r} has no history attached",
            code=codes.HISTORY_NOT_ATTACHED,
            category=ErrorCategory.NOT_FOUND,
        )
    return tracker


def history_model_for(model: type) -> type:
    """Return the history model derived for ``model``."""
    return tracker_for(model).history_model
