from django.urls import path
from . import views

urlpatterns = [
    # Farmer
    path('orders/<int:order_id>/matches/', views.match_order_transporters, name='transport-order-matches'),
    path('orders/<int:order_id>/cascade/', views.order_cascade, name='transport-order-cascade'),
    path('offers/<int:offer_id>/counter-response/', views.respond_to_counter, name='transport-counter-response'),

    # Transporter
    path('offers/', views.list_offers, name='transport-offers'),
    path('offers/<int:offer_id>/accept/', views.accept_offer, name='transport-offer-accept'),
    path('offers/<int:offer_id>/decline/', views.decline_offer, name='transport-offer-decline'),
    path('offers/<int:offer_id>/counter/', views.counter_offer, name='transport-offer-counter'),
    path('assignments/<int:assignment_id>/pickup/', views.mark_pickup, name='transport-assignment-pickup'),
    path('assignments/<int:assignment_id>/deliver/', views.mark_delivery, name='transport-assignment-deliver'),
]
