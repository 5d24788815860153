"""Geometry records shared by every stage of the layout optimizer."""

from .data_classes import (
    PatternDirection,
    Rect,
    Piece,
    PieceInstance,
    StockSheet,
    PlacedPiece,
    expand_pieces,
    merge_equivalent_sheets
)
