"""
Genetic algorithm driver for layout optimization.

Generational loop:
1. Evaluate every individual without a cached fitness (optionally fanned out
   to a process pool).
2. Rank the population by fitness, then sheet count, then birth order.
3. Copy the top elitism_count individuals unchanged.
4. Fill the remaining slots with children: two tournament-selected parents,
   order crossover, swap/flip mutation, occasional inversion.

The run stops at the generation limit, after `patience` generations without
improvement, when the time budget is spent (checked between generations
only), or when a zero-waste feasible layout is found under the WASTE
objective. The best individual ever seen is returned, not just the best of
the final population.

Randomness: every (generation, slot) pair gets its own numpy Generator
spawned from the run's SeedSequence, so a fixed seed reproduces the same run
regardless of how many workers evaluate it.
"""

import logging
import time
from concurrent.futures import Executor, ProcessPoolExecutor
from contextlib import nullcontext
from itertools import repeat
from typing import Callable, List, Optional
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from ..utils.config import Objective, OptimizerConfig
from .fitness_function import FitnessEvaluator, evaluate_genome
from .individual import Individual
from .operators import invert, mutate, order_crossover, tournament_select


logger = logging.getLogger(__name__)


class StopReason(Enum):
    """Why a run ended."""
    MAX_GENERATIONS = "max_generations"
    NO_IMPROVEMENT = "no_improvement"
    TIME_BUDGET = "time_budget"
    OPTIMAL = "optimal"


@dataclass(frozen=True)
class GenerationStats:
    """Summary of one evaluated generation."""
    generation: int
    best_fitness: float
    mean_fitness: float
    best_ever_fitness: float
    evaluations: int
    elapsed: float


@dataclass
class GAResult:
    """Outcome of a genetic algorithm run."""
    best: Individual
    stop_reason: StopReason
    history: List[GenerationStats] = field(default_factory=list)
    evaluations: int = 0
    elapsed: float = 0.0

    @property
    def generations(self) -> int:
        return len(self.history)

    @property
    def fitness(self) -> float:
        return self.best.fitness


class GeneticAlgorithm:
    """
    Evolves piece orderings and rotations to minimize layout fitness.
    """

    def __init__(self,
                 evaluator: FitnessEvaluator,
                 config: OptimizerConfig,
                 progress_callback: Optional[Callable[[float], None]] = None,
                 clock: Callable[[], float] = time.monotonic,
                 seed_sequence: Optional[np.random.SeedSequence] = None,
                 deadline: Optional[float] = None):
        """
        Args:
            evaluator: Decodes and scores genomes
            config: Run parameters (validated by the caller)
            progress_callback: Called with a value in [0, 1] after each generation
            clock: Time source for the time budget
            seed_sequence: Root of the run's random streams; defaults to one
                built from config.random_seed
            deadline: Clock reading after which no new generation starts;
                combined with config.time_budget, the earlier one wins
        """
        self.evaluator = evaluator
        self.config = config
        self.progress_callback = progress_callback
        self.clock = clock
        self.deadline = deadline

        self.rotatable = evaluator.rotatable()
        if seed_sequence is None:
            seed_sequence = np.random.SeedSequence(config.random_seed)
        self.seed_sequence = seed_sequence
        self.best: Optional[Individual] = None
        self.history: List[GenerationStats] = []
        self.evaluations = 0
        self._births = 0

    # -------------------------------------------------------------------------
    # Random streams
    # -------------------------------------------------------------------------

    def rng_for(self, generation: int, slot: int) -> np.random.Generator:
        """Independent stream for one population slot of one generation."""
        seq = np.random.SeedSequence(self.seed_sequence.entropy,
                                     spawn_key=tuple(self.seed_sequence.spawn_key) + (generation, slot))
        return np.random.default_rng(seq)

    def _next_birth(self) -> int:
        birth = self._births
        self._births += 1
        return birth

    # -------------------------------------------------------------------------
    # Population
    # -------------------------------------------------------------------------

    def sorted_orders(self) -> List[List[int]]:
        """Largest-first orderings: by area, then by longest side."""
        pieces = self.evaluator.pieces
        indices = range(len(pieces))
        by_area = sorted(indices, key=lambda i: -pieces[i].area)
        by_side = sorted(indices, key=lambda i: -max(pieces[i].width, pieces[i].height))
        return [by_area, by_side]

    def initial_population(self) -> List[Individual]:
        size = self.config.population_size
        n = self.evaluator.num_pieces
        population: List[Individual] = []

        if self.config.seed_sorted_individuals:
            for order in self.sorted_orders():
                if len(population) < size:
                    population.append(Individual(order=order, rotations=[False] * n,
                                                 birth=self._next_birth()))

        for slot in range(len(population), size):
            population.append(Individual.random(self.rotatable, self.rng_for(0, slot),
                                                birth=self._next_birth()))
        return population

    def evaluate_population(self, population: List[Individual],
                            executor: Optional[Executor] = None) -> int:
        """Evaluate individuals without a cached fitness. Returns how many were evaluated."""
        pending = [ind for ind in population if not ind.is_evaluated]
        if not pending:
            return 0

        if executor is None:
            for ind in pending:
                ind.evaluate(self.evaluator)
        else:
            chunksize = max(1, len(pending) // (self.config.workers * 4))
            results = executor.map(evaluate_genome,
                                   repeat(self.evaluator),
                                   [ind.order for ind in pending],
                                   [ind.rotations for ind in pending],
                                   chunksize=chunksize)
            for ind, (layout, result) in zip(pending, results):
                ind.set_evaluation(layout, result)

        self.evaluations += len(pending)
        return len(pending)

    def next_generation(self, ranked: List[Individual], generation: int) -> List[Individual]:
        """Breed the next population from a ranked (best first) one."""
        config = self.config
        population = [ind.copy() for ind in ranked[:config.elitism_count]]

        for slot in range(len(population), config.population_size):
            rng = self.rng_for(generation, slot)
            parent1 = tournament_select(ranked, config.tournament_size, rng)
            parent2 = tournament_select(ranked, config.tournament_size, rng)

            if rng.random() < config.crossover_probability:
                order, rotations = order_crossover(parent1, parent2, rng)
            else:
                order, rotations = list(parent1.order), list(parent1.rotations)

            order, rotations = mutate(order, rotations, self.rotatable,
                                      config.mutation_probability, rng)
            if rng.random() < config.inversion_probability:
                order = invert(order, rng)

            child = Individual(order=order, rotations=rotations, birth=self._next_birth())
            for parent in (parent1, parent2):
                if child.genome_key() == parent.genome_key():
                    child.set_evaluation(parent.layout, parent.result)
                    break
            population.append(child)

        return population

    # -------------------------------------------------------------------------
    # Main loop
    # -------------------------------------------------------------------------

    def run(self) -> GAResult:
        config = self.config
        start = self.clock()
        logger.info("Starting GA: %d pieces, %d stock types, population=%d, "
                    "generations=%d, seed=%s",
                    self.evaluator.num_pieces, len(self.evaluator.stock),
                    config.population_size, config.max_generations,
                    self.seed_sequence.entropy)

        if config.workers > 1:
            pool = ProcessPoolExecutor(max_workers=config.workers)
        else:
            pool = nullcontext()

        deadline = self.deadline
        if config.time_budget is not None:
            budget_end = start + config.time_budget
            deadline = budget_end if deadline is None else min(deadline, budget_end)

        population = self.initial_population()
        stale = 0
        generation = 0

        with pool as executor:
            while True:
                evaluated = self.evaluate_population(population, executor)
                ranked = sorted(population, key=lambda ind: ind.rank_key())

                if self._update_best(ranked[0]):
                    stale = 0
                    logger.debug("Generation %d: new best %r", generation, self.best.result)
                else:
                    stale += 1

                fitnesses = [ind.fitness for ind in ranked]
                self.history.append(GenerationStats(
                    generation=generation,
                    best_fitness=fitnesses[0],
                    mean_fitness=float(np.mean(fitnesses)),
                    best_ever_fitness=self.best.fitness,
                    evaluations=evaluated,
                    elapsed=self.clock() - start,
                ))

                if self.progress_callback is not None:
                    self.progress_callback(min(1.0, (generation + 1) / (config.max_generations + 1)))

                reason = self._stop_reason(generation, stale, deadline)
                if reason is not None:
                    break

                generation += 1
                population = self.next_generation(ranked, generation)

        if self.progress_callback is not None:
            self.progress_callback(1.0)

        elapsed = self.clock() - start
        logger.info("GA finished after %d generations (%s): best %r in %.2fs",
                    generation + 1, reason.value, self.best.result, elapsed)

        return GAResult(
            best=self.best,
            stop_reason=reason,
            history=list(self.history),
            evaluations=self.evaluations,
            elapsed=elapsed,
        )

    def _update_best(self, candidate: Individual) -> bool:
        if self.best is None or candidate.rank_key()[:2] < self.best.rank_key()[:2]:
            self.best = candidate.copy()
            return True
        return False

    def _stop_reason(self, generation: int, stale: int,
                     deadline: Optional[float]) -> Optional[StopReason]:
        config = self.config
        result = self.best.result

        if (self.evaluator.objective is Objective.WASTE and result.valid
                and result.waste_area == 0):
            return StopReason.OPTIMAL
        if generation >= config.max_generations:
            return StopReason.MAX_GENERATIONS
        if config.patience is not None and stale >= config.patience:
            return StopReason.NO_IMPROVEMENT
        if deadline is not None and self.clock() >= deadline:
            return StopReason.TIME_BUDGET
        return None
