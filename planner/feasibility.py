"""Feasibility aggregation over a task's children."""

from __future__ import annotations

import math
from collections.abc import Sequence

from planner.task_tree import Task

EPSILON = 0.0001


def aggregate_feasibility(children: Sequence[Task]) -> float:
    """Impact-weighted geometric mean of child feasibility.

    Both impact and feasibility are floored at ``EPSILON`` so a zero on
    either side cannot zero out or divide the product. No children means
    nothing stands in the way, so the result is 1.
    """
    if not children:
        return 1.0
    if len(children) == 1:
        return max(children[0].feasibility, EPSILON)

    log_sum = 0.0
    total_impact = 0.0
    for child in children:
        impact = max(child.impact, EPSILON)
        feasibility = max(child.feasibility, EPSILON)
        log_sum += impact * math.log(feasibility)
        total_impact += impact
    return math.exp(log_sum / total_impact)
