"""
Service layer between the REST API and the layout optimizer.
"""

import logging
from typing import Any, Dict, Optional

from django.conf import settings

from layout_optimizer.geometry.data_classes import Piece, StockSheet
from layout_optimizer.optimization.optimizer import LayoutOptimizer, OptimizationResult
from layout_optimizer.utils.config import OptimizerConfig


logger = logging.getLogger(__name__)


class OptimizationService:
    """
    Service for running layout optimization requests.
    """

    def __init__(self, workers: Optional[int] = None):
        """
        Initialize the service.

        Args:
            workers: Evaluation processes per run (default: settings.OPTIMIZER_WORKERS)
        """
        if workers is None:
            workers = getattr(settings, 'OPTIMIZER_WORKERS', 1)
        self.workers = workers

    def build_config(self, config_params: Optional[Dict[str, Any]] = None) -> OptimizerConfig:
        """Build a validated OptimizerConfig from request parameters."""
        params = dict(config_params or {})
        params.setdefault('workers', self.workers)
        return OptimizerConfig.from_dict(params).validate()

    def run(self, validated_data: Dict[str, Any]) -> OptimizationResult:
        """
        Run an optimization job.

        Args:
            validated_data: Output of OptimizeRequestSerializer with keys
                'pieces', 'stock_sheets' and optionally 'config'

        Returns:
            OptimizationResult with the best layout and run statistics

        Raises:
            ConfigurationError: If the request cannot be optimized
        """
        config = self.build_config(validated_data.get('config'))
        pieces = [Piece.from_dict(p) for p in validated_data['pieces']]
        stock = [StockSheet.from_dict(s) for s in validated_data['stock_sheets']]

        logger.info("Optimizing %d piece types on %d stock types (seed=%s)",
                    len(pieces), len(stock), config.random_seed)

        optimizer = LayoutOptimizer(config)
        optimizer.add_pieces(pieces)
        optimizer.add_stock_sheets(stock)
        result = optimizer.optimize()

        logger.info("Optimization finished: %r", result.layout)
        return result

    def to_response(self, result: OptimizationResult) -> Dict[str, Any]:
        return {
            'success': True,
            'layout': result.layout.to_dict(),
            'statistics': result.statistics(),
        }


# Singleton instance
_service_instance = None


def get_optimization_service() -> OptimizationService:
    """Get or create the optimization service singleton."""
    global _service_instance
    if _service_instance is None:
        _service_instance = OptimizationService()
    return _service_instance
