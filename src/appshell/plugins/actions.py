"""Action stack: run reversible install operations in order, unwind on failure."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class Action:
    """A forward operation and its inverse, with the arguments captured as plain data."""

    handler: Callable[..., Any]
    args: Sequence[Any] = ()
    reverter: Callable[..., Any] | None = None
    revert_args: Sequence[Any] = ()
    description: str = ""

    def run(self) -> None:
        self.handler(*self.args)

    def revert(self) -> None:
        if self.reverter is not None:
            self.reverter(*self.revert_args)

    def describe(self) -> dict[str, Any]:
        """Serializable summary, used in logs."""
        return {
            "description": self.description,
            "handler": getattr(self.handler, "__name__", repr(self.handler)),
            "reverter": getattr(self.reverter, "__name__", repr(self.reverter)),
        }


@dataclass
class RollbackFailure:
    action: Action
    error: BaseException


@dataclass
class ActionStack:
    """Pending actions run strictly in push order; completed ones are reverted last-first."""

    pending: list[Action] = field(default_factory=list)
    completed: list[Action] = field(default_factory=list)
    rollback_failures: list[RollbackFailure] = field(default_factory=list)

    @staticmethod
    def create_action(
        handler: Callable[..., Any],
        args: Sequence[Any],
        reverter: Callable[..., Any] | None,
        revert_args: Sequence[Any],
        description: str = "",
    ) -> Action:
        return Action(handler, tuple(args), reverter, tuple(revert_args), description)

    def push(
        self,
        handler: Callable[..., Any],
        args: Sequence[Any],
        reverter: Callable[..., Any] | None,
        revert_args: Sequence[Any],
        description: str = "",
    ) -> Action:
        action = self.create_action(handler, args, reverter, revert_args, description)
        self.pending.append(action)
        return action

    def push_action(self, action: Action) -> None:
        self.pending.append(action)

    def __len__(self) -> int:
        return len(self.pending)

    def process(self, platform: str = "", root: object = None) -> None:
        """Run every pending action. On failure revert completed ones and re-raise.

        The error raised is the one from the failing forward operation. Failures
        while reverting are logged and kept in ``rollback_failures``.
        """
        logger.debug(f"Beginning processing of action stack for {platform} project ({root})")
        self.completed = []
        self.rollback_failures = []
        while self.pending:
            action = self.pending.pop(0)
            try:
                action.run()
            except Exception as e:
                logger.warning(
                    f"Error during processing of action {action.description or action.describe()}: "
                    f"{e}. Reverting {len(self.completed)} completed action(s)"
                )
                self.pending.clear()
                self._revert_completed()
                raise
            self.completed.append(action)
        logger.debug(f"Action stack processing complete ({len(self.completed)} action(s))")

    def _revert_completed(self) -> None:
        while self.completed:
            undo = self.completed.pop()
            try:
                undo.revert()
            except Exception as err:
                self.rollback_failures.append(RollbackFailure(undo, err))
                logger.error(
                    f"A reversion action failed ({undo.description or undo.describe()}): {err}"
                )
