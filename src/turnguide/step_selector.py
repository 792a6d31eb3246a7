# step_selector.py
# Resolves the active maneuver step for a matched polyline index.

from bisect import bisect_right
from typing import Sequence

from .models import NavigationStep


def active_step_index(steps: Sequence[NavigationStep], matched_index: int) -> int:
    """
    Position in steps of the step whose [start_index, next start) range holds matched_index.

    Indices before the first step resolve to the first step, indices at or past
    the last step's start resolve to the last step.
    """
    if not steps:
        raise ValueError("No steps to select from.")
    starts = [s.start_index for s in steps]
    return max(0, bisect_right(starts, matched_index) - 1)


def select_active_step(steps: Sequence[NavigationStep], matched_index: int) -> NavigationStep:
    """Active step for matched_index (see active_step_index)."""
    return steps[active_step_index(steps, matched_index)]
