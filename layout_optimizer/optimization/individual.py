"""
Genome representation for the layout genetic algorithm.

An Individual is a permutation of piece indices (placement order) plus one
rotation bit per piece index. Its Layout and fitness are computed lazily
and cached; the cache is only valid for the genome it was computed from, so
operators always build new Individuals instead of editing one in place.
"""

from typing import List, Optional, Sequence, Tuple
from dataclasses import dataclass, field

import numpy as np

from ..packing.placement import Layout
from .fitness_function import FitnessEvaluator, FitnessResult


@dataclass
class Individual:
    """
    Individual in the GA population.

    Attributes:
        order: Permutation of piece indices, in placement order
        rotations: Preferred rotation per piece index (not per position)
        birth: Creation sequence number, last tie-break when ranking
    """
    order: List[int]
    rotations: List[bool]
    birth: int = 0
    layout: Optional[Layout] = field(default=None, repr=False, compare=False)
    result: Optional[FitnessResult] = field(default=None, repr=False, compare=False)

    def __len__(self):
        return len(self.order)

    @property
    def is_evaluated(self) -> bool:
        return self.result is not None

    @property
    def fitness(self) -> float:
        if self.result is None:
            raise ValueError("Individual has not been evaluated")
        return self.result.fitness

    def evaluate(self, evaluator: FitnessEvaluator) -> float:
        """Evaluate once; later calls return the cached fitness."""
        if self.result is None:
            self.layout, self.result = evaluator.evaluate(self.order, self.rotations)
        return self.result.fitness

    def set_evaluation(self, layout: Layout, result: FitnessResult):
        self.layout = layout
        self.result = result

    def rank_key(self) -> Tuple[Tuple[int, float, float], int, int]:
        """Fitness ranking, then fewer sheets, then earlier birth."""
        if self.result is None:
            raise ValueError("Individual has not been evaluated")
        return (self.result.ranking, self.result.num_sheets, self.birth)

    def genome_key(self) -> Tuple[Tuple[int, ...], Tuple[bool, ...]]:
        return (tuple(self.order), tuple(self.rotations))

    def copy(self, birth: Optional[int] = None) -> "Individual":
        """Copy the genome, keeping the cached evaluation."""
        return Individual(
            order=list(self.order),
            rotations=list(self.rotations),
            birth=self.birth if birth is None else birth,
            layout=self.layout,
            result=self.result,
        )

    @classmethod
    def random(cls, rotatable: Sequence[bool], rng: np.random.Generator,
               birth: int = 0) -> "Individual":
        """Random permutation with random rotation bits where rotation is allowed."""
        n = len(rotatable)
        order = [int(i) for i in rng.permutation(n)]
        bits = rng.random(n) < 0.5
        rotations = [bool(bits[i]) and bool(rotatable[i]) for i in range(n)]
        return cls(order=order, rotations=rotations, birth=birth)


def is_valid_permutation(order: Sequence[int], n: int) -> bool:
    """Every index 0..n-1 exactly once."""
    return len(order) == n and sorted(order) == list(range(n))
