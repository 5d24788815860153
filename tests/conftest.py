"""Shared fixtures for the layout optimizer test suite."""

import pytest

from layout_optimizer.geometry.data_classes import (
    Piece,
    StockSheet,
    expand_pieces,
)
from layout_optimizer.utils.config import OptimizerConfig


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def square_sheet() -> StockSheet:
    """Unlimited 100x100 stock sheet."""
    return StockSheet(100, 100, sheet_id="S")


@pytest.fixture
def exact_fit_pieces():
    """Pieces whose areas add up to exactly one 100x100 sheet."""
    return [
        Piece(50, 50, piece_id="a"),
        Piece(50, 50, piece_id="b"),
        Piece(50, 100, piece_id="c"),
    ]


@pytest.fixture
def exact_fit_instances(exact_fit_pieces):
    return expand_pieces(exact_fit_pieces)


@pytest.fixture
def mixed_pieces():
    """A small problem with no zero-waste solution on a 100x100 sheet."""
    return [
        Piece(40, 30, piece_id="door", quantity=3),
        Piece(25, 60, piece_id="side", quantity=2),
        Piece(70, 15, piece_id="shelf", quantity=2),
        Piece(33, 33, piece_id="panel", can_rotate=False),
    ]


@pytest.fixture
def fast_config() -> OptimizerConfig:
    """Small, seeded configuration that keeps test runs quick."""
    return OptimizerConfig(
        population_size=12,
        max_generations=8,
        elitism_count=2,
        tournament_size=3,
        patience=None,
        random_seed=1234,
    )
