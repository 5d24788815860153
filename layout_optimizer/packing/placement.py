"""
Deterministic placement heuristic.

Turns an ordered sequence of (piece, preferred rotation) requests into a
complete Layout: pieces are placed strictly in the given order into the best
free rectangle of the sheets already open, and a new sheet is opened from the
most preferred stock type that still has sheets left and can hold the piece
whenever the open sheets are full.

Two packing algorithms decode the same requests:
- GUILLOTINE: every leftover comes from edge-to-edge cuts (the default)
- MAXRECTS: nested packing on maximal free rectangles, denser but not
  guillotine-cuttable
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field
from enum import Enum

from ..geometry.data_classes import PieceInstance, PlacedPiece, Rect, StockSheet
from .free_space import FreeRectChoice, FreeSpaceTracker, MergePolicy, SplitRule
from .max_rects import MaxRectsTracker


logger = logging.getLogger(__name__)


class PackingAlgorithm(Enum):
    """Free-space model used to decode a genome."""
    GUILLOTINE = "guillotine"
    MAXRECTS = "maxrects"


@dataclass(frozen=True)
class PlacementStrategy:
    """Named placement rules and the blade width used while building a layout."""
    rect_choice: FreeRectChoice = FreeRectChoice.BEST_AREA_FIT
    split_rule: SplitRule = SplitRule.SHORTER_LEFTOVER_AXIS
    merge_policy: MergePolicy = MergePolicy.AFTER_EACH_PLACEMENT
    blade_width: float = 0
    algorithm: PackingAlgorithm = PackingAlgorithm.GUILLOTINE

    def new_tracker(self) -> FreeSpaceTracker:
        tracker_class = (MaxRectsTracker if self.algorithm is PackingAlgorithm.MAXRECTS
                         else FreeSpaceTracker)
        return tracker_class(
            blade_width=self.blade_width,
            rect_choice=self.rect_choice,
            split_rule=self.split_rule,
            merge_policy=self.merge_policy,
        )


DEFAULT_STRATEGY = PlacementStrategy()


# =============================================================================
# RESULT CLASSES
# =============================================================================

@dataclass
class SheetLayout:
    """
    Pieces cut from one stock sheet.

    Attributes:
        sheet: Stock sheet type this layout was cut from
        placements: Placed pieces in placement order
        waste_rects: Disjoint free rectangles left over after cutting
    """
    sheet: StockSheet
    placements: List[PlacedPiece] = field(default_factory=list)
    waste_rects: List[Rect] = field(default_factory=list)

    @property
    def sheet_area(self) -> float:
        return self.sheet.area

    @property
    def used_area(self) -> float:
        return sum(p.area for p in self.placements)

    @property
    def waste_area(self) -> float:
        return self.sheet_area - self.used_area

    @property
    def utilization(self) -> float:
        return (self.used_area / self.sheet_area) * 100 if self.sheet_area > 0 else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sheet": self.sheet.to_dict(),
            "placements": [p.to_dict() for p in self.placements],
            "waste_rects": [r.to_dict() for r in self.waste_rects],
            "used_area": self.used_area,
            "waste_area": self.waste_area,
        }


@dataclass
class Layout:
    """
    A complete solution: every used sheet plus the pieces that did not fit.

    A layout with unplaced pieces is still a valid result; it is marked
    infeasible and the caller decides what to do with it.
    """
    sheets: List[SheetLayout] = field(default_factory=list)
    unplaced: List[PieceInstance] = field(default_factory=list)

    @property
    def num_sheets(self) -> int:
        return len(self.sheets)

    @property
    def is_feasible(self) -> bool:
        return not self.unplaced

    @property
    def total_sheet_area(self) -> float:
        return sum(s.sheet_area for s in self.sheets)

    @property
    def used_area(self) -> float:
        return sum(s.used_area for s in self.sheets)

    @property
    def waste_area(self) -> float:
        return self.total_sheet_area - self.used_area

    @property
    def total_cost(self) -> float:
        return sum(s.sheet.price for s in self.sheets)

    @property
    def utilization(self) -> float:
        total = self.total_sheet_area
        return (self.used_area / total) * 100 if total > 0 else 0

    def placed_pieces(self) -> List[PlacedPiece]:
        return [p for s in self.sheets for p in s.placements]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sheets": [s.to_dict() for s in self.sheets],
            "unplaced": [p.to_dict() for p in self.unplaced],
            "num_sheets": self.num_sheets,
            "used_area": self.used_area,
            "waste_area": self.waste_area,
            "total_cost": self.total_cost,
            "utilization": self.utilization,
            "feasible": self.is_feasible,
        }

    def __repr__(self) -> str:
        return (f"Layout(sheets={self.num_sheets}, waste={self.waste_area}, "
                f"utilization={self.utilization:.2f}%, unplaced={len(self.unplaced)})")


# =============================================================================
# HEURISTIC
# =============================================================================

def preference_order(stock: Sequence[StockSheet]) -> List[int]:
    """Indices of stock types, most preferred first (priority, then input order)."""
    return sorted(range(len(stock)), key=lambda i: (stock[i].priority, i))


def build_layout(requests: Sequence[Tuple[PieceInstance, bool]],
                 stock: Sequence[StockSheet],
                 strategy: PlacementStrategy = DEFAULT_STRATEGY) -> Layout:
    """
    Pack pieces in the given order.

    Args:
        requests: (piece, prefer_rotated) pairs in placement order
        stock: Available stock sheet types
        strategy: Free-rectangle choice, split and merge rules

    Returns:
        Layout with one SheetLayout per opened sheet
    """
    tracker = strategy.new_tracker()
    order = preference_order(stock)
    remaining: List[Optional[int]] = [sheet.quantity for sheet in stock]
    unplaced: List[PieceInstance] = []

    for piece, prefer_rotated in requests:
        if tracker.try_place(piece, prefer_rotated) is not None:
            continue

        stock_index = _next_available_sheet(piece, stock, order, remaining)
        if stock_index is None:
            logger.debug("No stock left for piece %s (instance %d)",
                         piece.piece_id, piece.index)
            unplaced.append(piece)
            continue

        if remaining[stock_index] is not None:
            remaining[stock_index] -= 1
        tracker.add_sheet(stock[stock_index])

        if tracker.try_place(piece, prefer_rotated) is None:
            unplaced.append(piece)

    if strategy.merge_policy is MergePolicy.ON_FAILURE:
        tracker.merge_free_rects()

    sheets = [
        SheetLayout(sheet=sheet,
                    placements=list(tracker.placements[i]),
                    waste_rects=tracker.waste_rects(i))
        for i, sheet in enumerate(tracker.sheets)
        if tracker.placements[i]
    ]
    return Layout(sheets=sheets, unplaced=unplaced)


def _next_available_sheet(piece: PieceInstance,
                          stock: Sequence[StockSheet],
                          order: List[int],
                          remaining: List[Optional[int]]) -> Optional[int]:
    for i in order:
        if remaining[i] == 0:
            continue
        if stock[i].can_contain(piece):
            return i
    return None
