"""
Layout validation.

Checks a finished Layout against the invariants every produced layout must
hold:
- No two placed pieces on the same sheet overlap
- Every placed piece lies within its sheet
- No stock type is used more often than its quantity allows
- Placed pieces keep the size of the piece they came from, in an orientation
  the piece's rotation flag and the sheet's grain permit
- Each piece instance is placed at most once, and unplaced instances are not
  also placed
- Feasible layouts place every requested instance exactly once
"""

from collections import Counter
from typing import Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field

from ..geometry.data_classes import PieceInstance, PlacedPiece, Rect
from ..packing.placement import Layout


@dataclass
class ValidationResult:
    """Result of layout validation."""
    is_valid: bool
    num_overlaps: int = 0
    num_out_of_bounds: int = 0
    errors: List[str] = field(default_factory=list)


def find_overlapping_pairs(placements: Sequence[PlacedPiece]) -> List[Tuple[int, int]]:
    """Indices of overlapping placement pairs (touching edges are allowed)."""
    pairs = []
    n = len(placements)
    for i in range(n):
        for j in range(i + 1, n):
            if placements[i].rect.intersects(placements[j].rect):
                pairs.append((i, j))
    return pairs


def find_out_of_bounds(placements: Sequence[PlacedPiece], bounds: Rect) -> List[int]:
    return [i for i, p in enumerate(placements) if not bounds.contains(p.rect)]


def validate_layout(layout: Layout,
                    pieces: Optional[Sequence[PieceInstance]] = None) -> ValidationResult:
    """
    Validate a layout.

    Args:
        layout: Layout to check
        pieces: Requested piece instances; enables the size and conservation checks

    Returns:
        ValidationResult with one error message per violation
    """
    errors: List[str] = []
    num_overlaps = 0
    num_out_of_bounds = 0

    for sheet_no, sheet_layout in enumerate(layout.sheets):
        placements = sheet_layout.placements
        if not placements:
            errors.append(f"Sheet {sheet_no} has no pieces")

        for i, j in find_overlapping_pairs(placements):
            num_overlaps += 1
            area = placements[i].rect.intersection_area(placements[j].rect)
            errors.append(f"Sheet {sheet_no}: pieces {placements[i].instance} and "
                          f"{placements[j].instance} overlap by {area}")

        for i in find_out_of_bounds(placements, sheet_layout.sheet.bounds):
            num_out_of_bounds += 1
            errors.append(f"Sheet {sheet_no}: piece {placements[i].instance} "
                          f"lies outside the sheet")

    for sheet, used in Counter(s.sheet for s in layout.sheets).items():
        if sheet.quantity is not None and used > sheet.quantity:
            errors.append(f"Stock {sheet.sheet_id} used {used} times, "
                          f"only {sheet.quantity} available")

    placed = layout.placed_pieces()
    counts = Counter(p.instance for p in placed)
    for instance, count in sorted(counts.items()):
        if count > 1:
            errors.append(f"Piece instance {instance} placed {count} times")

    for piece in layout.unplaced:
        if piece.index in counts:
            errors.append(f"Piece instance {piece.index} is both placed and unplaced")

    if pieces is not None:
        by_index: Dict[int, PieceInstance] = {p.index: p for p in pieces}
        for sheet_layout in layout.sheets:
            for p in sheet_layout.placements:
                source = by_index.get(p.instance)
                if source is None:
                    errors.append(f"Unknown piece instance {p.instance}")
                    continue
                if (p.width, p.height) != source.dimensions(p.rotated):
                    errors.append(f"Piece instance {p.instance} changed size")
                if p.rotated not in sheet_layout.sheet.orientations(source):
                    errors.append(f"Piece instance {p.instance} placed in a forbidden "
                                  f"orientation")

        accounted = set(counts) | {u.index for u in layout.unplaced}
        missing = sorted(set(by_index) - accounted)
        if missing:
            errors.append(f"Piece instances missing from layout: {missing}")

        if layout.is_feasible:
            placed_ids = Counter(p.piece_id for p in placed)
            requested_ids = Counter(p.piece_id for p in pieces)
            if placed_ids != requested_ids:
                errors.append("Placed piece identifiers do not match the requested pieces")

    return ValidationResult(
        is_valid=not errors,
        num_overlaps=num_overlaps,
        num_out_of_bounds=num_out_of_bounds,
        errors=errors,
    )
