from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from accounts.permissions import IsBuyer
from services.cascade import TransportCascadeError
from transport.views import error_response
from . import services
from .serializers import OrderSerializer, OrderCancelSerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_detail(request, order_id):
    """Order detail for its buyer or farmer"""
    try:
        order = services.get_order_for_user(request.user, order_id)
    except TransportCascadeError as e:
        return error_response(e, order_id=order_id)

    return Response(OrderSerializer(order).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_order(request, order_id):
    """
    Cancel order by its buyer or farmer

    Closes any transport cascade still looking for a transporter.
    """
    serializer = OrderCancelSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    reason = serializer.validated_data.get('reason') or 'No reason provided'
    try:
        order = services.cancel_order(request.user, order_id, reason)
    except TransportCascadeError as e:
        return error_response(e, order_id=order_id)

    return Response({
        'success': True,
        'message': 'Order cancelled successfully',
        'order_id': order.id,
        'cancelled_at': order.cancelled_at,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsBuyer])
def confirm_delivery(request, order_id):
    try:
        order = services.confirm_delivery(request.user, order_id)
    except TransportCascadeError as e:
        return error_response(e, order_id=order_id)

    return Response({
        'success': True,
        'order': OrderSerializer(order).data,
        'message': 'Delivery confirmed. Thank you!',
    })
