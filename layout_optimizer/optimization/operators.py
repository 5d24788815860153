"""
Genetic operators over permutation genomes.

All operators take an explicit numpy Generator and return new gene lists;
parents are never modified. Every operator maps valid permutations to valid
permutations.
"""

from typing import List, Sequence, Tuple

import numpy as np

from .individual import Individual


def order_crossover(parent1: Individual, parent2: Individual,
                    rng: np.random.Generator) -> Tuple[List[int], List[bool]]:
    """
    Order crossover (OX).

    A random slice of parent1's ordering is copied to the same positions of
    the child; the remaining positions are filled left to right with the
    other pieces in the order they appear in parent2. Rotation bits follow
    the parent each piece was taken from.
    """
    n = len(parent1.order)
    if n < 2:
        return list(parent1.order), list(parent1.rotations)

    start = int(rng.integers(0, n))
    end = int(rng.integers(start + 1, n + 1))

    segment = parent1.order[start:end]
    taken = set(segment)
    filler = [gene for gene in parent2.order if gene not in taken]

    order = filler[:start] + segment + filler[start:]

    rotations = list(parent2.rotations)
    for gene in segment:
        rotations[gene] = parent1.rotations[gene]

    return order, rotations


def mutate(order: Sequence[int], rotations: Sequence[bool], rotatable: Sequence[bool],
           probability: float, rng: np.random.Generator) -> Tuple[List[int], List[bool]]:
    """
    Swap and flip mutation.

    Each position is swapped with a uniformly chosen position with the given
    probability, and each rotatable piece has its rotation bit flipped with
    the same probability.
    """
    order = list(order)
    rotations = list(rotations)
    n = len(order)
    if n == 0 or probability <= 0:
        return order, rotations

    swaps = rng.random(n) < probability
    targets = rng.integers(0, n, size=n)
    flips = rng.random(n) < probability

    for i in range(n):
        if swaps[i]:
            j = int(targets[i])
            order[i], order[j] = order[j], order[i]

    for i in range(n):
        if flips[i] and rotatable[i]:
            rotations[i] = not rotations[i]

    return order, rotations


def invert(order: Sequence[int], rng: np.random.Generator) -> List[int]:
    """Reverse a random slice of the ordering."""
    order = list(order)
    n = len(order)
    if n < 2:
        return order
    start = int(rng.integers(0, n - 1))
    end = int(rng.integers(start + 2, n + 1))
    order[start:end] = order[start:end][::-1]
    return order


def tournament_select(population: Sequence[Individual], tournament_size: int,
                      rng: np.random.Generator) -> Individual:
    """Sample tournament_size distinct individuals uniformly and keep the best."""
    size = min(tournament_size, len(population))
    picks = rng.choice(len(population), size=size, replace=False)
    return min((population[int(i)] for i in picks), key=lambda ind: ind.rank_key())
