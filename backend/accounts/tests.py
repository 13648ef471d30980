from django.test import TestCase
from rest_framework.test import APIRequestFactory

from common.testing import create_order, create_transporter, create_user
from transporters.models import TransporterProfile
from .models import User
from .views import LoginView, RefreshTokenView, RegisterView


class AuthFlowTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()

	def register(self, **data):
		payload = {
			'username': 'wanjiru',
			'email': 'wanjiru@example.com',
			'password': 'password123',
			'role': 'farmer',
			'phone_number': '+254700000000',
		}
		payload.update(data)
		request = self.factory.post('/api/auth/register/', payload, format='json')
		return RegisterView.as_view()(request)

	def test_register_farmer_returns_tokens(self):
		response = self.register()

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['user']['role'], 'farmer')
		self.assertIn('access', response.data['tokens'])
		self.assertFalse(TransporterProfile.objects.exists())

	def test_register_transporter_creates_profile(self):
		response = self.register(
			username='otieno',
			email='otieno@example.com',
			role='transporter',
			vehicle_number='KDA 123A',
			vehicle_capacity_kg='1500',
		)

		self.assertEqual(response.status_code, 201)
		profile = TransporterProfile.objects.get(user__username='otieno')
		self.assertEqual(profile.vehicle_number, 'KDA 123A')
		self.assertEqual(str(profile.vehicle_capacity_kg), '1500.00')
		self.assertEqual(profile.status, 'available')

	def test_transporter_needs_vehicle_details(self):
		response = self.register(role='transporter')

		self.assertEqual(response.status_code, 400)
		self.assertIn('vehicle_number', response.data)
		self.assertFalse(User.objects.exists())

	def test_login_and_refresh(self):
		self.register()

		request = self.factory.post(
			'/api/auth/login/', {'username': 'wanjiru', 'password': 'password123'}, format='json'
		)
		response = LoginView.as_view()(request)
		self.assertEqual(response.status_code, 200)

		request = self.factory.post(
			'/api/auth/refresh/', {'refresh': response.data['tokens']['refresh']}, format='json'
		)
		response = RefreshTokenView.as_view()(request)
		self.assertEqual(response.status_code, 200)
		self.assertIn('access', response.data)

	def test_bad_credentials(self):
		self.register()

		request = self.factory.post(
			'/api/auth/login/', {'username': 'wanjiru', 'password': 'wrong'}, format='json'
		)
		response = LoginView.as_view()(request)

		self.assertEqual(response.status_code, 400)

	def test_invalid_refresh_token(self):
		request = self.factory.post('/api/auth/refresh/', {'refresh': 'not-a-token'}, format='json')
		response = RefreshTokenView.as_view()(request)

		self.assertEqual(response.status_code, 401)

	def test_transporter_login_carries_vehicle_and_availability(self):
		self.register(
			username='otieno',
			email='otieno@example.com',
			role='transporter',
			vehicle_number='KDA 123A',
			vehicle_capacity_kg='1500',
		)
		TransporterProfile.objects.filter(user__username='otieno').update(status='busy')

		request = self.factory.post(
			'/api/auth/login/', {'username': 'otieno', 'password': 'password123'}, format='json'
		)
		response = LoginView.as_view()(request)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['transporter_profile'], {
			'vehicle_number': 'KDA 123A',
			'vehicle_capacity_kg': '1500.00',
			'status': 'busy',
		})

	def test_farmer_login_has_no_transporter_profile(self):
		response = self.register()

		self.assertNotIn('transporter_profile', response.data)


class UserAdminTests(TestCase):
	def setUp(self):
		self.admin = User.objects.create_superuser(
			'admin', 'admin@example.com', 'password123', role='farmer'
		)
		self.client.force_login(self.admin)
		self.transporter = create_transporter('kamau', 'KCB 777X', status='offline')
		self.farmer = create_user('njeri', 'farmer')
		create_order(self.farmer, create_user('buyer', 'buyer'))

	def test_changelist_shows_availability_and_order_counts(self):
		response = self.client.get('/admin/accounts/user/')

		self.assertEqual(response.status_code, 200)
		self.assertContains(response, 'Offline')
		self.assertContains(response, 'kamau')

	def test_changelist_filters_by_availability(self):
		response = self.client.get('/admin/accounts/user/', {'transporter_profile__status': 'offline'})

		self.assertEqual(response.status_code, 200)
		self.assertContains(response, 'kamau')
		self.assertNotContains(response, 'njeri')

	def test_vehicle_inline_only_for_transporters(self):
		response = self.client.get(f'/admin/accounts/user/{self.transporter.id}/change/')
		self.assertContains(response, 'KCB 777X')

		response = self.client.get(f'/admin/accounts/user/{self.farmer.id}/change/')
		self.assertEqual(response.status_code, 200)
		self.assertNotContains(response, 'vehicle_number')
