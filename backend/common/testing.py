"""Helpers shared by the test suites."""

from decimal import Decimal

from django.contrib.auth import get_user_model

from orders.models import Order
from transporters.models import TransporterProfile

User = get_user_model()


def fixed_distance_km(order) -> Decimal:
	"""Distance lookup used in tests: every order is 10 km."""
	return Decimal("10")


def create_user(username, role, **extra):
	return User.objects.create_user(
		username=username,
		password='pass1234',
		role=role,
		phone_number=extra.pop('phone_number', '0700000000'),
		**extra
	)


def create_transporter(username, vehicle_number, **profile):
	user = create_user(username, 'transporter')
	profile.setdefault('vehicle_capacity_kg', Decimal('1000'))
	profile.setdefault('status', 'available')
	TransporterProfile.objects.create(user=user, vehicle_number=vehicle_number, **profile)
	return user


def create_order(farmer, buyer, **fields):
	fields.setdefault('status', 'paid')
	fields.setdefault('cargo_weight_kg', Decimal('150.00'))
	return Order.objects.create(
		farmer=farmer,
		buyer=buyer,
		listing_id=fields.pop('listing_id', 'LST-1'),
		quantity=fields.pop('quantity', Decimal('3')),
		total_amount=fields.pop('total_amount', Decimal('4500.00')),
		pickup_location=fields.pop('pickup_location', 'Green Acres Farm, Nakuru'),
		pickup_region=fields.pop('pickup_region', 'Nakuru'),
		delivery_location=fields.pop('delivery_location', 'Westlands Market, Nairobi'),
		delivery_region=fields.pop('delivery_region', 'Nairobi'),
		**fields
	)
