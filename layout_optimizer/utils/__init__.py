"""Configuration and error types."""

from .exceptions import ConfigurationError, LayoutValidationError
from .config import OPTIMIZATION, Objective, OptimizerConfig
