"""
Free-space bookkeeping for guillotine sheet packing.

Each open sheet owns an index-addressed list of free rectangles. Placing a
piece consumes one free rectangle and replaces it with at most two new ones
produced by a single straight (guillotine) cut; adjacent free rectangles are
merged back together to keep the free space from fragmenting.

Free-rectangle choice heuristics follow "A Thousand Ways to Pack the Bin"
(Jukka Jylanki):
- BEST_AREA_FIT: smallest leftover area, ties by shorter leftover side
- BEST_SHORT_SIDE_FIT: smallest shorter leftover side, ties by longer side
- BEST_LONG_SIDE_FIT: smallest longer leftover side, ties by shorter side
- BOTTOM_LEFT: smallest resulting bottom edge (y + height), ties by leftmost x
- CONTACT_POINT: longest perimeter touching the sheet edges and placed
  pieces, ties by leftover area

Ties that survive the score are broken by sheet preference (stock priority,
then opening order), then by position in the sheet's free list (insertion
order), then by the preferred orientation.
"""

import logging
from typing import List, Optional, Tuple
from dataclasses import dataclass
from enum import Enum

from ..geometry.data_classes import PieceInstance, PlacedPiece, Rect, StockSheet


logger = logging.getLogger(__name__)


# =============================================================================
# STRATEGIES
# =============================================================================

class FreeRectChoice(Enum):
    """Rule for picking the free rectangle a piece goes into."""
    BEST_AREA_FIT = "best_area_fit"
    BEST_SHORT_SIDE_FIT = "best_short_side_fit"
    BEST_LONG_SIDE_FIT = "best_long_side_fit"
    BOTTOM_LEFT = "bottom_left"
    CONTACT_POINT = "contact_point"


LEFTOVER_FIT_CHOICES = (
    FreeRectChoice.BEST_AREA_FIT,
    FreeRectChoice.BEST_SHORT_SIDE_FIT,
    FreeRectChoice.BEST_LONG_SIDE_FIT,
)


class SplitRule(Enum):
    """Rule for choosing the guillotine cut that divides the leftover L-shape."""
    SHORTER_LEFTOVER_AXIS = "shorter_leftover_axis"
    LONGER_LEFTOVER_AXIS = "longer_leftover_axis"
    MINIMIZE_AREA = "minimize_area"
    MAXIMIZE_AREA = "maximize_area"
    SHORTER_AXIS = "shorter_axis"
    LONGER_AXIS = "longer_axis"


class MergePolicy(Enum):
    """When adjacent free rectangles are merged."""
    AFTER_EACH_PLACEMENT = "after_each_placement"
    ON_FAILURE = "on_failure"


def score_free_rect(width: float, height: float, free_rect: Rect,
                    choice: FreeRectChoice, contact: float = 0) -> Tuple[float, float]:
    """
    Score placing a width x height piece in the top-left corner of free_rect.
    Lower is better.

    contact is the perimeter length the piece would share with the sheet
    edges and already placed pieces; only CONTACT_POINT reads it.
    """
    leftover_w = free_rect.width - width
    leftover_h = free_rect.height - height
    short_side = min(leftover_w, leftover_h)
    long_side = max(leftover_w, leftover_h)

    if choice is FreeRectChoice.BEST_AREA_FIT:
        return (free_rect.area - width * height, short_side)
    if choice is FreeRectChoice.BEST_SHORT_SIDE_FIT:
        return (short_side, long_side)
    if choice is FreeRectChoice.BOTTOM_LEFT:
        return (free_rect.y + height, free_rect.x)
    if choice is FreeRectChoice.CONTACT_POINT:
        return (-contact, free_rect.area - width * height)
    return (long_side, short_side)


def common_interval_length(start1: float, end1: float, start2: float, end2: float) -> float:
    """Length shared by the intervals [start1, end1] and [start2, end2]."""
    if end1 < start2 or end2 < start1:
        return 0
    return min(end1, end2) - max(start1, start2)


def contact_point_score(piece: Rect, sheet: StockSheet,
                        placements: List[PlacedPiece], gap: float = 0) -> float:
    """
    Perimeter of piece touching the sheet edges or a placed piece.

    Pieces separated by exactly gap (the blade width) count as touching.
    """
    score = 0.0
    if piece.x == 0 or piece.right == sheet.width:
        score += piece.height
    if piece.y == 0 or piece.bottom == sheet.height:
        score += piece.width

    for placed in placements:
        other = placed.rect
        if other.right + gap == piece.x or piece.right + gap == other.x:
            score += common_interval_length(other.y, other.bottom, piece.y, piece.bottom)
        if other.bottom + gap == piece.y or piece.bottom + gap == other.y:
            score += common_interval_length(other.x, other.right, piece.x, piece.right)
    return score


def split_horizontally(free_rect: Rect, width: float, height: float,
                       rule: SplitRule) -> bool:
    """
    Decide the split axis for a piece placed in the top-left corner of free_rect.

    A horizontal split gives the full free width to the rectangle below the
    piece; a vertical split gives the full free height to the rectangle on
    its right.
    """
    leftover_w = free_rect.width - width
    leftover_h = free_rect.height - height

    if rule is SplitRule.SHORTER_LEFTOVER_AXIS:
        return leftover_w <= leftover_h
    if rule is SplitRule.LONGER_LEFTOVER_AXIS:
        return leftover_w > leftover_h
    if rule is SplitRule.MINIMIZE_AREA:
        return width * leftover_h > leftover_w * height
    if rule is SplitRule.MAXIMIZE_AREA:
        return width * leftover_h <= leftover_w * height
    if rule is SplitRule.SHORTER_AXIS:
        return free_rect.width <= free_rect.height
    return free_rect.width > free_rect.height


@dataclass(frozen=True)
class PlacementCandidate:
    """Best position found for a piece, before it is committed."""
    sheet_index: int
    slot: int
    rotated: bool
    width: float
    height: float
    score: Tuple[float, float]


# =============================================================================
# TRACKER
# =============================================================================

class FreeSpaceTracker:
    """
    Free rectangles of every sheet opened for one layout.

    One tracker is built per candidate evaluation, so nothing here is shared
    between individuals.
    """

    def __init__(self,
                 blade_width: float = 0,
                 rect_choice: FreeRectChoice = FreeRectChoice.BEST_AREA_FIT,
                 split_rule: SplitRule = SplitRule.SHORTER_LEFTOVER_AXIS,
                 merge_policy: MergePolicy = MergePolicy.AFTER_EACH_PLACEMENT):
        self.blade_width = blade_width
        self.rect_choice = rect_choice
        self.split_rule = split_rule
        self.merge_policy = merge_policy

        self.sheets: List[StockSheet] = []
        self.free_rects: List[List[Rect]] = []
        self.placements: List[List[PlacedPiece]] = []

    def __len__(self) -> int:
        return len(self.sheets)

    def add_sheet(self, sheet: StockSheet) -> int:
        """Open a new sheet with a single free rectangle covering it. Returns its index."""
        self.sheets.append(sheet)
        self.free_rects.append([sheet.bounds])
        self.placements.append([])
        return len(self.sheets) - 1

    def sheet_order(self) -> List[int]:
        """Open sheet indices, most preferred first (stock priority, then opening order)."""
        return sorted(range(len(self.sheets)), key=lambda i: (self.sheets[i].priority, i))

    def find_candidate(self, piece: PieceInstance,
                       prefer_rotated: bool = False) -> Optional[PlacementCandidate]:
        """Find the best free rectangle for the piece across all open sheets."""
        best: Optional[PlacementCandidate] = None
        contact = self.rect_choice is FreeRectChoice.CONTACT_POINT
        stop_on_exact_fit = self.rect_choice in LEFTOVER_FIT_CHOICES

        for sheet_index in self.sheet_order():
            sheet = self.sheets[sheet_index]
            orientations = sheet.orientations(piece, prefer_rotated)
            if not orientations:
                continue

            for slot, free_rect in enumerate(self.free_rects[sheet_index]):
                for rotated in orientations:
                    width, height = piece.dimensions(rotated)
                    if not free_rect.fits(width, height):
                        continue

                    touching = 0.0
                    if contact:
                        touching = contact_point_score(
                            Rect(free_rect.x, free_rect.y, width, height), sheet,
                            self.placements[sheet_index], self.blade_width)
                    score = score_free_rect(width, height, free_rect, self.rect_choice, touching)
                    if best is None or score < best.score:
                        best = PlacementCandidate(sheet_index, slot, rotated,
                                                  width, height, score)
                        # Exact fit, nothing later can beat it.
                        if stop_on_exact_fit and score == (0, 0):
                            return best
        return best

    def try_place(self, piece: PieceInstance,
                  rotated: bool = False) -> Optional[Tuple[int, PlacedPiece]]:
        """
        Place the piece in the best free rectangle of any open sheet.

        Args:
            piece: Piece instance to place
            rotated: Preferred orientation; the other one is also tried when
                the piece may rotate

        Returns:
            (sheet_index, PlacedPiece), or None when no open sheet has room
        """
        candidate = self.find_candidate(piece, rotated)

        if candidate is None and self.merge_policy is MergePolicy.ON_FAILURE:
            if self.merge_free_rects() > 0:
                candidate = self.find_candidate(piece, rotated)

        if candidate is None:
            return None

        return candidate.sheet_index, self.commit(piece, candidate)

    def commit(self, piece: PieceInstance, candidate: PlacementCandidate) -> PlacedPiece:
        """Carve the candidate position out of its free rectangle."""
        free_list = self.free_rects[candidate.sheet_index]
        free_rect = free_list.pop(candidate.slot)
        placed = self._placed_piece(piece, candidate, free_rect)

        free_list.extend(self.split_free_rect(free_rect, placed.rect))
        self.placements[candidate.sheet_index].append(placed)

        if self.merge_policy is MergePolicy.AFTER_EACH_PLACEMENT:
            self._merge_sheet(candidate.sheet_index)

        return placed

    @staticmethod
    def _placed_piece(piece: PieceInstance, candidate: PlacementCandidate,
                      free_rect: Rect) -> PlacedPiece:
        return PlacedPiece(
            piece_id=piece.piece_id,
            instance=piece.index,
            x=free_rect.x,
            y=free_rect.y,
            width=candidate.width,
            height=candidate.height,
            rotated=candidate.rotated,
            pattern_direction=(piece.pattern_direction.rotated()
                               if candidate.rotated else piece.pattern_direction),
        )

    def split_free_rect(self, free_rect: Rect, placed: Rect) -> List[Rect]:
        """
        Split the L-shaped leftover of free_rect into at most two rectangles.

        The blade width is removed between the piece and each new rectangle;
        strips no wider than the blade are dropped.
        """
        horizontal = split_horizontally(free_rect, placed.width, placed.height,
                                        self.split_rule)
        if horizontal:
            bottom_width, right_height = free_rect.width, placed.height
        else:
            bottom_width, right_height = placed.width, free_rect.height

        leftover_h = free_rect.height - placed.height
        bottom_height = leftover_h - self.blade_width if leftover_h > self.blade_width else 0

        leftover_w = free_rect.width - placed.width
        right_width = leftover_w - self.blade_width if leftover_w > self.blade_width else 0

        new_rects = []
        if bottom_width > 0 and bottom_height > 0:
            new_rects.append(Rect(
                x=free_rect.x,
                y=free_rect.y + placed.height + self.blade_width,
                width=bottom_width,
                height=bottom_height,
            ))
        if right_width > 0 and right_height > 0:
            new_rects.append(Rect(
                x=free_rect.x + placed.width + self.blade_width,
                y=free_rect.y,
                width=right_width,
                height=right_height,
            ))
        return new_rects

    def merge_free_rects(self, sheet_index: Optional[int] = None) -> int:
        """
        Merge adjacent free rectangles that share a full edge.

        Args:
            sheet_index: Sheet to merge, or None for every open sheet

        Returns:
            Number of merges performed
        """
        if sheet_index is not None:
            return self._merge_sheet(sheet_index)
        return sum(self._merge_sheet(i) for i in range(len(self.sheets)))

    def _merge_sheet(self, sheet_index: int) -> int:
        rects = self.free_rects[sheet_index]
        kerf = self.blade_width
        merges = 0

        changed = True
        while changed:
            changed = False
            for i in range(len(rects) - 1, -1, -1):
                for j in range(len(rects) - 1, i, -1):
                    a, b = rects[i], rects[j]
                    merged = None

                    if a.width == b.width and a.x == b.x:
                        if a.y == b.bottom + kerf:
                            merged = Rect(a.x, b.y, a.width, a.height + b.height + kerf)
                        elif a.bottom + kerf == b.y:
                            merged = Rect(a.x, a.y, a.width, a.height + b.height + kerf)
                    elif a.height == b.height and a.y == b.y:
                        if a.x == b.right + kerf:
                            merged = Rect(b.x, a.y, a.width + b.width + kerf, a.height)
                        elif a.right + kerf == b.x:
                            merged = Rect(a.x, a.y, a.width + b.width + kerf, a.height)

                    if merged is not None:
                        rects[i] = merged
                        del rects[j]
                        merges += 1
                        changed = True

        return merges

    def waste_rects(self, sheet_index: int) -> List[Rect]:
        """Leftover rectangles of a sheet, as reported in the layout."""
        return list(self.free_rects[sheet_index])
