"""
Core geometry data classes for 2D sheet layout optimization.

This module defines the fundamental data structures used throughout the project:
- Rect: Axis-aligned rectangle (free space, waste, placed footprints)
- PatternDirection: Grain/pattern direction of a piece or sheet
- Piece: Rectangular cut requested by the caller
- PieceInstance: One physical copy of a Piece (after quantity expansion)
- StockSheet: Rectangular stock material
- PlacedPiece: Piece instance positioned on a sheet
"""

from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum


# =============================================================================
# PATTERN DIRECTION
# =============================================================================

class PatternDirection(Enum):
    """Linear direction of a pattern or grain."""
    NONE = "none"
    PARALLEL_TO_WIDTH = "parallel_to_width"
    PARALLEL_TO_LENGTH = "parallel_to_length"

    def rotated(self) -> "PatternDirection":
        """Return the direction after a 90 degree rotation."""
        if self is PatternDirection.PARALLEL_TO_WIDTH:
            return PatternDirection.PARALLEL_TO_LENGTH
        if self is PatternDirection.PARALLEL_TO_LENGTH:
            return PatternDirection.PARALLEL_TO_WIDTH
        return PatternDirection.NONE

    @classmethod
    def parse(cls, value: Any) -> "PatternDirection":
        """Accept an enum member, its value or its name."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        text = str(value).strip()
        for member in cls:
            if text == member.value or text.upper() == member.name:
                return member
        raise ValueError(f"Unknown pattern direction: {value!r}")


# =============================================================================
# RECTANGLE
# =============================================================================

@dataclass(frozen=True)
class Rect:
    """
    Axis-aligned rectangle with its origin at the top-left corner.

    Attributes:
        x: Left edge
        y: Top edge (y grows downwards)
        width: Extent along X
        height: Extent along Y
    """
    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Return (x_min, y_min, x_max, y_max)."""
        return (self.x, self.y, self.right, self.bottom)

    def fits(self, width: float, height: float) -> bool:
        """Check whether a width x height rectangle fits inside this one."""
        return width <= self.width and height <= self.height

    def contains(self, other: "Rect") -> bool:
        """Check whether other lies fully inside this rectangle."""
        return (other.x >= self.x and other.y >= self.y and
                other.right <= self.right and other.bottom <= self.bottom)

    def intersects(self, other: "Rect") -> bool:
        """Check whether the interiors overlap (shared edges do not count)."""
        return not (
            self.right <= other.x or other.right <= self.x or
            self.bottom <= other.y or other.bottom <= self.y
        )

    def intersection_area(self, other: "Rect") -> float:
        dx = min(self.right, other.right) - max(self.x, other.x)
        dy = min(self.bottom, other.bottom) - max(self.y, other.y)
        if dx <= 0 or dy <= 0:
            return 0
        return dx * dy

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


# =============================================================================
# INPUT RECORDS
# =============================================================================

@dataclass(frozen=True)
class Piece:
    """
    Rectangular piece that has to be cut from stock.

    Attributes:
        width: Width of the piece
        height: Height of the piece
        piece_id: Caller identifier, echoed back on every placed copy
        can_rotate: Whether the optimizer may turn the piece 90 degrees
        quantity: Number of identical copies required
        pattern_direction: Grain direction of the piece
    """
    width: float
    height: float
    piece_id: Optional[str] = None
    can_rotate: bool = True
    quantity: int = 1
    pattern_direction: PatternDirection = PatternDirection.NONE

    @property
    def area(self) -> float:
        return self.width * self.height

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Piece":
        piece_id = data.get("piece_id", data.get("id"))
        return cls(
            width=data["width"],
            height=data["height"],
            piece_id=None if piece_id is None else str(piece_id),
            can_rotate=bool(data.get("can_rotate", True)),
            quantity=int(data.get("quantity", 1)),
            pattern_direction=PatternDirection.parse(data.get("pattern_direction")),
        )

    def __repr__(self) -> str:
        rot = "rotatable" if self.can_rotate else "fixed"
        return (f"Piece(id={self.piece_id}, {self.width}x{self.height}, "
                f"qty={self.quantity}, {rot})")


@dataclass(frozen=True)
class PieceInstance:
    """
    A single physical copy of a Piece.

    `index` is unique across one optimization run and is what genomes
    permute; `piece_id` is the caller's identifier and may repeat.
    """
    index: int
    width: float
    height: float
    piece_id: Optional[str] = None
    can_rotate: bool = True
    pattern_direction: PatternDirection = PatternDirection.NONE

    @property
    def area(self) -> float:
        return self.width * self.height

    def dimensions(self, rotated: bool) -> Tuple[float, float]:
        """Return (width, height) in the requested orientation."""
        if rotated:
            return (self.height, self.width)
        return (self.width, self.height)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "piece_id": self.piece_id,
            "width": self.width,
            "height": self.height,
            "can_rotate": self.can_rotate,
            "pattern_direction": self.pattern_direction.value,
        }


@dataclass(frozen=True)
class StockSheet:
    """
    Rectangular stock sheet type.

    Attributes:
        width: Width of the sheet
        height: Height of the sheet
        sheet_id: Caller identifier
        price: Price of one sheet (used by the COST objective and reports)
        quantity: Sheets available of this type, None for unlimited
        priority: Preference order, lower is opened first
        pattern_direction: Grain direction of the sheet
    """
    width: float
    height: float
    sheet_id: Optional[str] = None
    price: float = 0
    quantity: Optional[int] = None
    priority: int = 0
    pattern_direction: PatternDirection = PatternDirection.NONE

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def bounds(self) -> Rect:
        return Rect(0, 0, self.width, self.height)

    def is_equivalent(self, other: "StockSheet") -> bool:
        """Same size, grain and price; quantities of equivalent sheets are summed."""
        return (self.width == other.width and self.height == other.height and
                self.pattern_direction == other.pattern_direction and
                self.price == other.price)

    def orientations(self, piece: PieceInstance, prefer_rotated: bool = False) -> List[bool]:
        """
        Return the orientations (False = upright, True = rotated) in which the
        piece may be laid on this sheet, preferred orientation first.
        """
        allowed = []
        if piece.pattern_direction == self.pattern_direction:
            allowed.append(False)
        if piece.can_rotate and piece.pattern_direction.rotated() == self.pattern_direction:
            allowed.append(True)
        if prefer_rotated:
            allowed.reverse()
        return allowed

    def can_contain(self, piece: PieceInstance) -> bool:
        """Check whether the piece fits an empty sheet in any permitted orientation."""
        bounds = self.bounds
        return any(bounds.fits(*piece.dimensions(rotated))
                   for rotated in self.orientations(piece))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StockSheet":
        sheet_id = data.get("sheet_id", data.get("id"))
        quantity = data.get("quantity")
        return cls(
            width=data["width"],
            height=data["height"],
            sheet_id=None if sheet_id is None else str(sheet_id),
            price=data.get("price", 0) or 0,
            quantity=None if quantity is None else int(quantity),
            priority=int(data.get("priority", 0) or 0),
            pattern_direction=PatternDirection.parse(data.get("pattern_direction")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sheet_id": self.sheet_id,
            "width": self.width,
            "height": self.height,
            "price": self.price,
            "quantity": self.quantity,
            "priority": self.priority,
            "pattern_direction": self.pattern_direction.value,
        }

    def __repr__(self) -> str:
        qty = "unlimited" if self.quantity is None else self.quantity
        return (f"StockSheet(id={self.sheet_id}, {self.width}x{self.height}, "
                f"price={self.price}, qty={qty})")


# =============================================================================
# OUTPUT RECORDS
# =============================================================================

@dataclass(frozen=True)
class PlacedPiece:
    """
    A piece instance placed on a sheet.

    Width and height are post-rotation, so the footprint on the sheet is
    always Rect(x, y, width, height).
    """
    piece_id: Optional[str]
    instance: int
    x: float
    y: float
    width: float
    height: float
    rotated: bool = False
    pattern_direction: PatternDirection = field(default=PatternDirection.NONE)

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def area(self) -> float:
        return self.width * self.height

    def to_dict(self) -> Dict[str, Any]:
        return {
            "piece_id": self.piece_id,
            "instance": self.instance,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "rotated": self.rotated,
            "pattern_direction": self.pattern_direction.value,
        }


# =============================================================================
# HELPERS
# =============================================================================

def expand_pieces(pieces: List[Piece]) -> List[PieceInstance]:
    """Expand pieces into one PieceInstance per required copy."""
    instances: List[PieceInstance] = []
    for piece in pieces:
        for _ in range(piece.quantity):
            instances.append(PieceInstance(
                index=len(instances),
                width=piece.width,
                height=piece.height,
                piece_id=piece.piece_id,
                can_rotate=piece.can_rotate,
                pattern_direction=piece.pattern_direction,
            ))
    return instances


def merge_equivalent_sheets(sheets: List[StockSheet]) -> List[StockSheet]:
    """
    Merge equivalent stock sheets, summing their quantities.

    If any of the merged sheets is unlimited the result is unlimited. The
    first occurrence keeps its position, identifier and priority.
    """
    merged: List[StockSheet] = []
    for sheet in sheets:
        for i, existing in enumerate(merged):
            if existing.is_equivalent(sheet):
                if existing.quantity is None or sheet.quantity is None:
                    quantity = None
                else:
                    quantity = existing.quantity + sheet.quantity
                merged[i] = StockSheet(
                    width=existing.width,
                    height=existing.height,
                    sheet_id=existing.sheet_id,
                    price=existing.price,
                    quantity=quantity,
                    priority=existing.priority,
                    pattern_direction=existing.pattern_direction,
                )
                break
        else:
            merged.append(sheet)
    return merged
