from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.tokens import RefreshToken

from transporters.models import TransporterProfile
from .serializers import RegisterSerializer, LoginSerializer, UserSerializer


def auth_payload(user, message):
    """
    User card plus a fresh token pair.

    Transporters also get their vehicle and availability, which the app
    needs before it can show any transport offers.
    """
    refresh = RefreshToken.for_user(user)
    payload = {
        'message': message,
        'user': UserSerializer(user).data,
        'tokens': {
            'refresh': str(refresh),
            'access': str(refresh.access_token),
        },
    }

    if user.role == 'transporter':
        try:
            profile = user.transporter_profile
        except TransporterProfile.DoesNotExist:
            profile = None
        payload['transporter_profile'] = profile and {
            'vehicle_number': profile.vehicle_number,
            'vehicle_capacity_kg': str(profile.vehicle_capacity_kg),
            'status': profile.status,
        }
    return payload


class RegisterView(APIView):
    """
    Register a farmer, buyer or transporter

    Transporters must send vehicle_number and vehicle_capacity_kg; their
    profile starts out available for matching.
    """
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        user = serializer.save()
        return Response(
            auth_payload(user, 'User registered successfully'),
            status=status.HTTP_201_CREATED
        )


class LoginView(APIView):
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response(auth_payload(serializer.validated_data, 'Login successful'))


class RefreshTokenView(APIView):
    """New access token from a refresh token (rotation follows SIMPLE_JWT)"""
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        if not request.data.get('refresh'):
            return Response(
                {'error': 'Refresh token is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        serializer = TokenRefreshSerializer(data={'refresh': request.data['refresh']})
        try:
            serializer.is_valid(raise_exception=True)
        except TokenError:
            return Response(
                {'error': 'Invalid refresh token'},
                status=status.HTTP_401_UNAUTHORIZED
            )
        return Response(serializer.validated_data)
