"""
API views for the layout optimization planner.
"""
import logging

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from layout_optimizer.utils.config import OPTIMIZATION
from layout_optimizer.utils.exceptions import ConfigurationError, LayoutValidationError

from .serializers import OptimizeRequestSerializer
from .services import get_optimization_service


logger = logging.getLogger(__name__)


# ================================
# OPTIMIZATION ENDPOINTS
# ================================

class OptimizeLayoutView(APIView):
    """
    API endpoint to optimize the layout of pieces on stock sheets.

    POST body: see OptimizeRequestSerializer. Responds with the best layout
    found and run statistics; a layout that could not place every piece is
    still a successful response with "feasible": false.
    """
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = OptimizeRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'success': False, 'errors': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        service = get_optimization_service()
        try:
            result = service.run(serializer.validated_data)
        except ConfigurationError as e:
            logger.warning("Rejected optimization request: %s", e.message)
            return Response(
                {'success': False, 'error': e.to_dict()},
                status=status.HTTP_400_BAD_REQUEST
            )
        except LayoutValidationError as e:
            logger.error("Optimizer produced an invalid layout: %s", e)
            return Response(
                {'success': False, 'error': str(e), 'errors': e.errors},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        return Response(service.to_response(result), status=status.HTTP_200_OK)


class OptimizerDefaultsView(APIView):
    """
    API endpoint returning the default run configuration.
    """
    permission_classes = [AllowAny]

    def get(self, request):
        defaults = {}
        for section, values in OPTIMIZATION.items():
            defaults[section] = {
                key: getattr(value, 'value', value) for key, value in values.items()
            }
        return Response(defaults, status=status.HTTP_200_OK)
