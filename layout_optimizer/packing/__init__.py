"""Placement heuristics: free-space tracking and layout building."""

from .free_space import (
    FreeRectChoice,
    SplitRule,
    MergePolicy,
    PlacementCandidate,
    FreeSpaceTracker,
    score_free_rect,
    split_horizontally
)
from .max_rects import MaxRectsTracker
from .placement import (
    PackingAlgorithm,
    PlacementStrategy,
    DEFAULT_STRATEGY,
    SheetLayout,
    Layout,
    build_layout,
    preference_order
)
