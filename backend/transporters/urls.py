from django.urls import path
from .views import (
    TransporterProfileView,
    TransporterStatusView,
    TransporterAssignmentsView,
)

urlpatterns = [
    path("profile/", TransporterProfileView.as_view(), name="transporter-profile"),
    path("status/", TransporterStatusView.as_view(), name="transporter-status"),
    path("assignments/", TransporterAssignmentsView.as_view(), name="transporter-assignments"),
]
