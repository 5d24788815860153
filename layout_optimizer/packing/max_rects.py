"""
Free-space bookkeeping for nested (non-guillotine) sheet packing.

MaxRects keeps every maximal free rectangle of a sheet, so free rectangles
overlap each other. Placing a piece splits every free rectangle it touches
into up to four maximal rectangles (above, below, left and right of the
piece) and drops rectangles contained in another one. The resulting
layouts are generally not cuttable with edge-to-edge saw cuts.

The free-rectangle choice rules are shared with the guillotine tracker;
BOTTOM_LEFT and CONTACT_POINT are the usual picks here.
"""

import logging
from typing import List

from ..geometry.data_classes import PieceInstance, PlacedPiece, Rect
from .free_space import FreeSpaceTracker, PlacementCandidate


logger = logging.getLogger(__name__)


# =============================================================================
# RECTANGLE SET OPERATIONS
# =============================================================================

def kerf_envelope(placed: Rect, bounds: Rect, blade_width: float) -> Rect:
    """Grow placed by the blade width on every side, clipped to bounds."""
    x = max(placed.x - blade_width, bounds.x)
    y = max(placed.y - blade_width, bounds.y)
    right = min(placed.right + blade_width, bounds.right)
    bottom = min(placed.bottom + blade_width, bounds.bottom)
    return Rect(x, y, right - x, bottom - y)


def split_around(free_rect: Rect, used: Rect) -> List[Rect]:
    """
    Maximal rectangles of free_rect left outside used.

    The parts overlap at the corners; an untouched free_rect comes back
    unchanged.
    """
    if not free_rect.intersects(used):
        return [free_rect]

    parts = []
    if used.y > free_rect.y:
        parts.append(Rect(free_rect.x, free_rect.y, free_rect.width, used.y - free_rect.y))
    if used.bottom < free_rect.bottom:
        parts.append(Rect(free_rect.x, used.bottom, free_rect.width, free_rect.bottom - used.bottom))
    if used.x > free_rect.x:
        parts.append(Rect(free_rect.x, free_rect.y, used.x - free_rect.x, free_rect.height))
    if used.right < free_rect.right:
        parts.append(Rect(used.right, free_rect.y, free_rect.right - used.right, free_rect.height))
    return parts


def subtract_rect(rect: Rect, cut: Rect) -> List[Rect]:
    """Pairwise disjoint rectangles covering rect minus cut."""
    if not rect.intersects(cut):
        return [rect]

    top = max(rect.y, cut.y)
    bottom = min(rect.bottom, cut.bottom)
    parts = []
    if cut.y > rect.y:
        parts.append(Rect(rect.x, rect.y, rect.width, cut.y - rect.y))
    if cut.bottom < rect.bottom:
        parts.append(Rect(rect.x, cut.bottom, rect.width, rect.bottom - cut.bottom))
    if cut.x > rect.x:
        parts.append(Rect(rect.x, top, cut.x - rect.x, bottom - top))
    if cut.right < rect.right:
        parts.append(Rect(cut.right, top, rect.right - cut.right, bottom - top))
    return parts


def prune_free_rects(rects: List[Rect]) -> List[Rect]:
    """Drop rectangles contained in another one; the first of equal rectangles stays."""
    kept = []
    for i, rect in enumerate(rects):
        covered = any(
            other.contains(rect) and (other != rect or j < i)
            for j, other in enumerate(rects) if j != i
        )
        if not covered:
            kept.append(rect)
    return kept


def disjoint_rects(rects: List[Rect]) -> List[Rect]:
    """
    Rewrite overlapping rectangles as disjoint ones covering the same area.

    Larger rectangles are kept whole; smaller ones lose the parts already
    covered.
    """
    result: List[Rect] = []
    for rect in sorted(rects, key=lambda r: r.area, reverse=True):
        fragments = [rect]
        for kept in result:
            fragments = [part for f in fragments for part in subtract_rect(f, kept)]
        result.extend(fragments)
    return result


# =============================================================================
# TRACKER
# =============================================================================

class MaxRectsTracker(FreeSpaceTracker):
    """
    Maximal free rectangles of every sheet opened for one layout.

    Pieces are kept a blade width apart from each other; the split and
    merge rules of the guillotine tracker do not apply.
    """

    def commit(self, piece: PieceInstance, candidate: PlacementCandidate) -> PlacedPiece:
        """Place the piece and re-split every free rectangle it touches."""
        sheet_index = candidate.sheet_index
        free_rect = self.free_rects[sheet_index][candidate.slot]
        placed = self._placed_piece(piece, candidate, free_rect)

        used = kerf_envelope(placed.rect, self.sheets[sheet_index].bounds, self.blade_width)
        split = [part for rect in self.free_rects[sheet_index]
                 for part in split_around(rect, used)]
        self.free_rects[sheet_index] = prune_free_rects(split)
        self.placements[sheet_index].append(placed)

        logger.debug("Sheet %d: %d free rectangles after placing instance %d",
                     sheet_index, len(self.free_rects[sheet_index]), piece.index)
        return placed

    def _merge_sheet(self, sheet_index: int) -> int:
        # Maximal rectangles already span every merge.
        return 0

    def waste_rects(self, sheet_index: int) -> List[Rect]:
        return disjoint_rects(self.free_rects[sheet_index])
