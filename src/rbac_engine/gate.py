"""Single-owner mutation gate."""

from __future__ import annotations

import logging
from enum import Enum

from .common.logging import log_context
from .errors import InvariantViolation, Unauthorized
from .identifiers import Identifier

logger = logging.getLogger(__name__)


class GateState(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"


class OwnerGate:
    """Restrict mutations to one owner identity.

    The gate starts ``UNINITIALIZED`` and moves to ``ACTIVE`` exactly once,
    when :meth:`activate` binds the owner. There is no way back and no
    ownership transfer.
    """

    def __init__(self) -> None:
        self._owner: Identifier | None = None

    @property
    def state(self) -> GateState:
        return GateState.UNINITIALIZED if self._owner is None else GateState.ACTIVE

    @property
    def owner(self) -> Identifier | None:
        return self._owner

    def activate(self, owner: Identifier) -> None:
        if self._owner is not None:
            raise InvariantViolation("Owner is already bound")
        self._owner = owner
        logger.info("rbac.gate.activated", extra=log_context(owner=owner))

    def is_owner(self, caller: Identifier) -> bool:
        return self._owner is not None and caller == self._owner

    def authorize(self, caller: Identifier) -> None:
        """Raise :class:`Unauthorized` unless ``caller`` is the bound owner."""

        if self._owner is None:
            logger.warning(
                "rbac.unauthorized",
                extra=log_context(rejected=caller, reason="uninitialized"),
            )
            raise Unauthorized("Engine has no owner yet", caller=caller)
        if caller != self._owner:
            logger.warning(
                "rbac.unauthorized",
                extra=log_context(rejected=caller, reason="not_owner"),
            )
            raise Unauthorized(caller=caller)


__all__ = ["GateState", "OwnerGate"]
