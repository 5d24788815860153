"""Optimization module for genetic algorithm layout optimization."""

from .fitness_function import (
    PenaltyWeights,
    FitnessResult,
    FitnessEvaluator,
    evaluate_genome
)
from .individual import Individual, is_valid_permutation
from .operators import order_crossover, mutate, invert, tournament_select
from .genetic_algorithm import (
    StopReason,
    GenerationStats,
    GAResult,
    GeneticAlgorithm
)
from .optimizer import (
    RunSummary,
    OptimizationResult,
    LayoutOptimizer,
    optimize
)
