from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.test import TestCase
from unittest.mock import Mock, patch

from common.testing import create_order, create_user
from .consumers import TransporterConsumer
from .notifications import notify_order_parties, notify_transporter_event, notify_user_event


@patch('realtime.notifications._group_send', return_value=True)
class NotificationRoutingTests(TestCase):
	def setUp(self):
		self.farmer = create_user('farmer', 'farmer')
		self.buyer = create_user('buyer', 'buyer')
		self.order = create_order(self.farmer, self.buyer)

	def test_transporter_event_goes_to_personal_group(self, mock_send):
		notify_transporter_event('status_updated', 42, extra={'status': 'offline'})

		group, payload = mock_send.call_args.args
		self.assertEqual(group, 'transporter_42')
		self.assertEqual(payload, {'type': 'status_updated', 'transporter_id': 42, 'status': 'offline'})

	def test_missing_recipient_is_skipped(self, mock_send):
		self.assertFalse(notify_transporter_event('transport_offer', None))
		self.assertFalse(notify_user_event('offer_declined', None))
		mock_send.assert_not_called()

	def test_order_parties_and_order_group(self, mock_send):
		sent = notify_order_parties('order_cancelled', self.order, 'Order cancelled')

		groups = [c.args[0] for c in mock_send.call_args_list]
		self.assertEqual(
			groups,
			['user_%d' % self.farmer.id, 'user_%d' % self.buyer.id, 'order_%d' % self.order.id],
		)
		self.assertEqual(sent, 3)
		self.assertEqual(mock_send.call_args.args[1]['status'], 'paid')

	def test_buyer_can_be_left_out(self, mock_send):
		notify_order_parties('cascade_cancelled', self.order, include_buyer=False)

		groups = [c.args[0] for c in mock_send.call_args_list]
		self.assertNotIn('user_%d' % self.buyer.id, groups)


class ChannelLayerDeliveryTests(TestCase):
	def test_send_with_in_memory_layer(self):
		farmer = create_user('farmer', 'farmer')
		self.assertTrue(notify_user_event('cascade_exhausted', farmer.id, message='No transporter accepted'))


class TransporterConsumerTests(TestCase):
	def communicator(self, user):
		communicator = WebsocketCommunicator(TransporterConsumer.as_asgi(), '/ws/transporter/')
		communicator.scope['user'] = user
		return communicator

	async def test_anonymous_connection_is_rejected(self):
		communicator = self.communicator(Mock(is_anonymous=True))

		connected, _ = await communicator.connect()

		self.assertFalse(connected)

	async def test_offer_events_reach_transporter(self):
		communicator = self.communicator(Mock(is_anonymous=False, id=7, role='transporter'))
		connected, _ = await communicator.connect()
		self.assertTrue(connected)
		hello = await communicator.receive_json_from()
		self.assertEqual(hello['type'], 'connection_established')

		await communicator.send_json_to({'type': 'ping'})
		self.assertEqual(await communicator.receive_json_from(), {'type': 'pong'})

		await get_channel_layer().group_send(
			'transporter_7',
			{'type': 'offer_closed', 'offer_id': 3, 'order_id': 9, 'message': 'Order cancelled'},
		)
		event = await communicator.receive_json_from()
		self.assertEqual(event, {'type': 'offer_closed', 'offer_id': 3, 'order_id': 9, 'message': 'Order cancelled'})

		await communicator.disconnect()
