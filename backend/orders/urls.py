from django.urls import path
from . import views

urlpatterns = [
    path('<int:order_id>/', views.order_detail, name='order-detail'),
    path('<int:order_id>/cancel/', views.cancel_order, name='order-cancel'),
    path('<int:order_id>/confirm-delivery/', views.confirm_delivery, name='order-confirm-delivery'),
]
