"""
Django REST Framework serializers for API endpoints.
"""

from rest_framework import serializers

from layout_optimizer.geometry.data_classes import PatternDirection
from layout_optimizer.packing.free_space import FreeRectChoice, MergePolicy, SplitRule
from layout_optimizer.packing.placement import PackingAlgorithm
from layout_optimizer.utils.config import Objective


def _choices(enum_cls):
    return [member.value for member in enum_cls]


class PieceSerializer(serializers.Serializer):
    """Serializer for a requested piece."""

    width = serializers.FloatField(help_text="Piece width")
    height = serializers.FloatField(help_text="Piece height")
    piece_id = serializers.CharField(
        required=False,
        allow_null=True,
        default=None,
        help_text="Identifier echoed back on every placed copy"
    )
    can_rotate = serializers.BooleanField(default=True)
    quantity = serializers.IntegerField(default=1, min_value=1)
    pattern_direction = serializers.ChoiceField(
        choices=_choices(PatternDirection),
        default=PatternDirection.NONE.value
    )

    def validate_width(self, value):
        if value <= 0:
            raise serializers.ValidationError("width must be positive")
        return value

    def validate_height(self, value):
        if value <= 0:
            raise serializers.ValidationError("height must be positive")
        return value


class StockSheetSerializer(serializers.Serializer):
    """Serializer for an available stock sheet type."""

    width = serializers.FloatField(help_text="Sheet width")
    height = serializers.FloatField(help_text="Sheet height")
    sheet_id = serializers.CharField(required=False, allow_null=True, default=None)
    price = serializers.FloatField(default=0, min_value=0)
    quantity = serializers.IntegerField(
        required=False,
        allow_null=True,
        default=None,
        min_value=0,
        help_text="Sheets available; null for unlimited"
    )
    priority = serializers.IntegerField(
        default=0,
        help_text="Lower values are opened first"
    )
    pattern_direction = serializers.ChoiceField(
        choices=_choices(PatternDirection),
        default=PatternDirection.NONE.value
    )

    def validate_width(self, value):
        if value <= 0:
            raise serializers.ValidationError("width must be positive")
        return value

    def validate_height(self, value):
        if value <= 0:
            raise serializers.ValidationError("height must be positive")
        return value


class OptimizerConfigSerializer(serializers.Serializer):
    """
    Serializer for run configuration.

    Every field is optional; omitted fields keep the optimizer defaults.
    Cross-field rules (e.g. elitism_count <= population_size) are checked by
    OptimizerConfig.validate().
    """
    population_size = serializers.IntegerField(required=False, min_value=1)
    max_generations = serializers.IntegerField(required=False, min_value=0)
    elitism_count = serializers.IntegerField(required=False, min_value=0)
    tournament_size = serializers.IntegerField(required=False, min_value=1)
    mutation_probability = serializers.FloatField(required=False, min_value=0, max_value=1)
    crossover_probability = serializers.FloatField(required=False, min_value=0, max_value=1)
    inversion_probability = serializers.FloatField(required=False, min_value=0, max_value=1)
    patience = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    time_budget = serializers.FloatField(
        required=False,
        allow_null=True,
        help_text="Wall-clock budget in seconds"
    )
    random_seed = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    objective = serializers.ChoiceField(choices=_choices(Objective), required=False)
    algorithm = serializers.ChoiceField(choices=_choices(PackingAlgorithm), required=False)
    rect_choice = serializers.ChoiceField(choices=_choices(FreeRectChoice), required=False)
    split_rule = serializers.ChoiceField(choices=_choices(SplitRule), required=False)
    merge_policy = serializers.ChoiceField(choices=_choices(MergePolicy), required=False)
    blade_width = serializers.FloatField(required=False, min_value=0)
    allow_mixed_stock_sizes = serializers.BooleanField(required=False)
    seed_sorted_individuals = serializers.BooleanField(required=False)
    validate_layouts = serializers.BooleanField(required=False)


class OptimizeRequestSerializer(serializers.Serializer):
    """
    Serializer for an optimization request.

    Example:
        {
            "pieces": [{"width": 50, "height": 50, "piece_id": "A", "quantity": 2}],
            "stock_sheets": [{"width": 100, "height": 100}],
            "config": {"random_seed": 42, "max_generations": 20}
        }
    """
    pieces = PieceSerializer(many=True, allow_empty=False)
    stock_sheets = StockSheetSerializer(many=True, allow_empty=False)
    config = OptimizerConfigSerializer(required=False)
