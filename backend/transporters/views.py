from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from transporters.models import TransporterProfile
from transporters.serializers import (
    TransporterProfileSerializer,
    TransporterStatusSerializer,
)
from transport.models import TransportAssignment
from transport.serializers import TransportAssignmentSerializer

from transporters import services

# Utility: Ensure request.user is a transporter
def require_transporter(user):
    if user.role != "transporter":
        return False, Response({"error": "Only transporters allowed"}, status=403)
    try:
        profile = user.transporter_profile
        return True, profile
    except TransporterProfile.DoesNotExist:
        return False, Response({"error": "Transporter profile not found"}, status=404)


class TransporterProfileView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_transporter(request.user)
        if ok is False:
            return profile  # Response object

        serializer = TransporterProfileSerializer(profile, context={"request": request})
        return Response(serializer.data)

    def post(self, request):
        ok, profile = require_transporter(request.user)
        if ok is False:
            return profile

        data = services.update_transporter_profile(profile, request.data, request=request)
        return Response(data, status=200)


class TransporterStatusView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_transporter(request.user)
        if ok is False:
            return profile

        return Response({"status": profile.status})

    def put(self, request):
        ok, profile = require_transporter(request.user)
        if ok is False:
            return profile

        serializer = TransporterStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data["status"]

        services.update_transporter_status(profile, new_status)

        return Response({
            "message": f"Status updated to {new_status}",
            "status": new_status
        })


class TransporterAssignmentsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_transporter(request.user)
        if ok is False:
            return profile

        assignments = (
            TransportAssignment.objects
            .filter(transporter=request.user)
            .select_related("order")
            .order_by("-created_at")
        )
        status_filter = request.query_params.get("status")
        if status_filter:
            assignments = assignments.filter(status=status_filter)

        serializer = TransportAssignmentSerializer(assignments, many=True, context={"request": request})
        return Response({"count": len(serializer.data), "assignments": serializer.data})
