import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from accounts.permissions import IsFarmer, IsTransporter
from services import cascade as cascade_service
from services.cascade import TransportCascadeError
from services.matching import match_transporters
from .serializers import (
    TransportOfferSerializer,
    TransportCascadeSerializer,
    TransportAssignmentSerializer,
    TransporterCandidateSerializer,
    CascadeOfferSerializer,
    CreateCascadeSerializer,
    DeclineOfferSerializer,
    CounterOfferSerializer,
    CounterResponseSerializer,
)

logger = logging.getLogger(__name__)


def error_response(exc: TransportCascadeError, **extra):
    """Translate a service error into the shared JSON error shape."""
    return Response(
        {
            'success': False,
            'error': exc.error_code,
            'message': exc.message,
            **extra,
        },
        status=exc.status_code
    )


# ==================== Farmer APIs ====================

@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFarmer])
def match_order_transporters(request, order_id):
    """Ranked transporters for an order plus the minimum fee to offer them"""
    try:
        result = match_transporters(order_id, farmer=request.user)
    except TransportCascadeError as e:
        return error_response(e, order_id=order_id)

    candidates = TransporterCandidateSerializer(result.candidates, many=True).data
    return Response({
        'success': True,
        'order_id': result.order.id,
        'minimum_fee': str(result.minimum_fee),
        'distance_km': str(result.distance_km),
        'count': len(candidates),
        'candidates': candidates,
        'message': (
            f'{len(candidates)} transporters available'
            if candidates
            else 'No transporters available right now. Please try again later.'
        ),
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsFarmer])
def order_cascade(request, order_id):
    """
    GET: latest cascade for the order (POLLING ENDPOINT)
    POST: send the order's transport job to ranked transporters
    """
    if request.method == 'GET':
        try:
            cascade = cascade_service.get_order_cascade(request.user, order_id)
        except TransportCascadeError as e:
            return error_response(e, order_id=order_id)

        if cascade is None:
            return Response({
                'has_cascade': False,
                'message': 'Transport has not been arranged for this order yet',
            })

        return Response({
            'has_cascade': True,
            'cascade': TransportCascadeSerializer(cascade).data,
        })

    serializer = CreateCascadeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        result = cascade_service.create_cascade(
            request.user,
            order_id,
            primary_transporter_id=data['primary_transporter_id'],
            secondary_transporter_id=data['secondary_transporter_id'],
            tertiary_transporter_id=data.get('tertiary_transporter_id'),
            proposed_fee=data['proposed_fee'],
            pickup_location=data.get('pickup_location'),
        )
    except TransportCascadeError as e:
        return error_response(e, order_id=order_id)

    return Response({
        'success': True,
        'cascade': TransportCascadeSerializer(result.cascade).data,
        'offers': CascadeOfferSerializer(result.offers, many=True).data,
        'minimum_fee': str(result.extra['minimum_fee']),
        'message': result.message,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsFarmer])
def respond_to_counter(request, offer_id):
    """Farmer accepts or rejects a transporter's counter fee"""
    serializer = CounterResponseSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = cascade_service.respond_to_counter(
            request.user, offer_id, serializer.validated_data['accept']
        )
    except TransportCascadeError as e:
        return error_response(e, offer_id=offer_id)

    response = {
        'success': True,
        'offer': CascadeOfferSerializer(result.offer).data,
        'cascade_state': result.cascade.state,
        'message': result.message,
    }
    if result.assignment is not None:
        response['assignment'] = TransportAssignmentSerializer(result.assignment).data
    return Response(response)


# ==================== Transporter APIs ====================

@api_view(['GET'])
@permission_classes([IsAuthenticated, IsTransporter])
def list_offers(request):
    """Offers addressed to the transporter, optionally filtered by ?status="""
    try:
        offers = cascade_service.list_offers(request.user, request.query_params.get('status'))
    except TransportCascadeError as e:
        return error_response(e)

    serializer = TransportOfferSerializer(offers, many=True)
    return Response({'count': len(serializer.data), 'offers': serializer.data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsTransporter])
def accept_offer(request, offer_id):
    """Accept a transport offer; the first accept across open tiers wins"""
    try:
        result = cascade_service.accept_offer(request.user, offer_id)
    except TransportCascadeError as e:
        return error_response(e, offer_id=offer_id)

    return Response({
        'success': True,
        'offer': TransportOfferSerializer(result.offer).data,
        'assignment': TransportAssignmentSerializer(result.assignment).data,
        'message': result.message,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsTransporter])
def decline_offer(request, offer_id):
    serializer = DeclineOfferSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = cascade_service.decline_offer(
            request.user, offer_id, serializer.validated_data.get('reason')
        )
    except TransportCascadeError as e:
        return error_response(e, offer_id=offer_id)

    return Response({
        'success': True,
        'offer_id': result.offer.id,
        'status': result.offer.status,
        'message': result.message,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsTransporter])
def counter_offer(request, offer_id):
    serializer = CounterOfferSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = cascade_service.counter_offer(
            request.user, offer_id, serializer.validated_data['counter_fee']
        )
    except TransportCascadeError as e:
        return error_response(e, offer_id=offer_id)

    return Response({
        'success': True,
        'offer': TransportOfferSerializer(result.offer).data,
        'message': result.message,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsTransporter])
def mark_pickup(request, assignment_id):
    try:
        assignment = cascade_service.mark_picked_up(request.user, assignment_id)
    except TransportCascadeError as e:
        return error_response(e, assignment_id=assignment_id)

    return Response({
        'success': True,
        'assignment': TransportAssignmentSerializer(assignment).data,
        'message': 'Pickup confirmed. Safe travels!',
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsTransporter])
def mark_delivery(request, assignment_id):
    try:
        assignment = cascade_service.mark_delivered(request.user, assignment_id)
    except TransportCascadeError as e:
        return error_response(e, assignment_id=assignment_id)

    return Response({
        'success': True,
        'assignment': TransportAssignmentSerializer(assignment).data,
        'message': 'Delivery recorded. Waiting for the buyer to confirm.',
    })
