"""
2D guillotine layout optimizer.

Places rectangular pieces onto rectangular stock sheets, searching piece
orderings and rotations with a genetic algorithm and decoding each one with
a deterministic guillotine (or, optionally, nested MaxRects) placement
heuristic.

    from layout_optimizer import Piece, StockSheet, optimize

    layout = optimize([Piece(50, 50, "a", quantity=2)], [StockSheet(100, 100)])
"""

from .geometry import (
    PatternDirection,
    Rect,
    Piece,
    PieceInstance,
    StockSheet,
    PlacedPiece
)
from .packing import (
    FreeRectChoice,
    SplitRule,
    MergePolicy,
    PackingAlgorithm,
    PlacementStrategy,
    SheetLayout,
    Layout
)
from .utils import ConfigurationError, LayoutValidationError, Objective, OptimizerConfig
from .cutting import ValidationResult, validate_layout
from .optimization import (
    StopReason,
    OptimizationResult,
    LayoutOptimizer,
    optimize
)

__version__ = "1.0.0"
