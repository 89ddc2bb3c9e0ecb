"""
Pre/post fit hooks.

Hooks run around every fit in nested order: pre-fit hooks in list order,
post-fit hooks in reverse order, and post-fit hooks always run, also
when the fit fails. The overlay isolation hook uses this to neutralise
an overlay curve while its base curve is calibrated.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List, Optional
import logging

from ..curves.curve import Curve, OverlayMode

logger = logging.getLogger(__name__)


class FitHook(ABC):
    """A pre/post pair run around a fit."""

    @abstractmethod
    def pre_process(self, curve: Curve) -> Optional[object]:
        """
        Prepare for a fit of curve.

        Returns:
            State handed back to post_process, or None if nothing was done
        """

    @abstractmethod
    def post_process(self, curve: Curve, state: Optional[object]) -> None:
        """Undo whatever pre_process did."""


class FitHookCollection:
    """Ordered hooks with nested pre/post execution."""

    def __init__(self, hooks: Optional[List[FitHook]] = None):
        self._hooks: List[FitHook] = list(hooks or [])

    def add(self, hook: FitHook) -> None:
        self._hooks.append(hook)

    def __iter__(self) -> Iterator[FitHook]:
        return iter(self._hooks)

    def __len__(self) -> int:
        return len(self._hooks)

    @contextmanager
    def applied(self, curve: Curve):
        """
        Run pre-fit hooks, yield, then run post-fit hooks in reverse.

        Only hooks whose pre-fit step completed are post-processed.
        """
        entered = []
        try:
            for hook in self._hooks:
                entered.append((hook, hook.pre_process(curve)))
            yield
        finally:
            for hook, state in reversed(entered):
                hook.post_process(curve, state)


class OverlayIsolationHook(FitHook):
    """
    Collapse an overlay curve to a neutral constant during a fit.

    The exact overlay points are restored afterwards.

    Args:
        overlay: Overlay to isolate, or None to use the fitted curve's overlay
        neutral_value: Constant used while fitting; defaults to 1.0 for a
            multiplicative overlay and 0.0 for an additive one
    """

    def __init__(self, overlay: Optional[Curve] = None, neutral_value: Optional[float] = None):
        self.overlay = overlay
        self.neutral_value = neutral_value

    def pre_process(self, curve: Curve):
        overlay = self.overlay if self.overlay is not None else getattr(curve, "overlay", None)
        if overlay is None:
            return None

        neutral = self.neutral_value
        if neutral is None:
            neutral = 1.0 if curve.overlay_mode == OverlayMode.MULTIPLICATIVE else 0.0

        state = overlay.snapshot()
        overlay.set_constant(neutral)
        logger.debug("Isolated overlay %s of %s at %s", overlay.name, curve.name, neutral)
        return overlay, state

    def post_process(self, curve: Curve, state) -> None:
        if state is None:
            return
        overlay, saved = state
        overlay.restore(saved)
        logger.debug("Restored overlay %s of %s", overlay.name, curve.name)


__all__ = [
    "FitHook",
    "FitHookCollection",
    "OverlayIsolationHook",
]
