import uuid
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

from db.extensions import db
from models.booking import Booking, BOOKING_PAID, BOOKING_PENDING
from tests.helpers import auth_headers


def _book(client, slot, user_id=1):
    response = client.post('/api/bookings/direct', json={
        'subVenueId': 1,
        'timeSlotDocId': slot.time_slot_id,
        'slotId': slot.id,
        'sport': 'Cricket',
    }, headers=auth_headers(user_id))
    return db.session.get(Booking, uuid.UUID(response.get_json()['booking_id']))


def test_my_bookings_lists_only_own_bookings(client, users, time_slot, stripe_create):
    first = _book(client, time_slot.slots[0])
    _book(client, time_slot.slots[1], user_id=2)

    response = client.get('/api/bookings/my-bookings', headers=auth_headers(1))

    bookings = response.get_json()['bookings']
    assert [b['booking_id'] for b in bookings] == [str(first.id)]
    assert bookings[0]['amount'] == 1000
    assert bookings[0]['coordinates'] == [73.85, 18.52]


def test_verify_payment_catches_up_before_webhook(client, users, slot, stripe_create, mail_thread):
    booking = _book(client, slot)
    paid_session = MagicMock(payment_status='paid', payment_intent='pi_test_9')

    with patch('stripe.checkout.Session.retrieve', return_value=paid_session) as retrieve:
        response = client.get(f'/api/bookings/verify-payment?session_id={booking.stripe_session_id}',
                              headers=auth_headers(1))

    assert response.status_code == 200
    assert response.get_json()['status'] == BOOKING_PAID
    assert booking.stripe_payment_intent_id == 'pi_test_9'
    retrieve.assert_called_once_with(booking.stripe_session_id, api_key='sk_test_dummy')
    mail_thread.assert_called_once()


def test_verify_payment_unpaid_session(client, users, slot, stripe_create):
    booking = _book(client, slot)

    with patch('stripe.checkout.Session.retrieve', return_value=MagicMock(payment_status='unpaid')):
        response = client.get(f'/api/bookings/verify-payment?session_id={booking.stripe_session_id}',
                              headers=auth_headers(1))

    assert response.get_json()['status'] == BOOKING_PENDING


def test_verify_payment_requires_session_id(client, users):
    response = client.get('/api/bookings/verify-payment', headers=auth_headers(1))
    assert response.status_code == 400
    assert response.get_json()['message'] == 'session_id is required'


def test_verify_payment_of_someone_elses_session(client, users, slot, stripe_create):
    booking = _book(client, slot)
    response = client.get(f'/api/bookings/verify-payment?session_id={booking.stripe_session_id}',
                          headers=auth_headers(2))
    assert response.status_code == 404


def test_calendar_link_for_paid_booking(client, users, slot, stripe_create):
    booking = _book(client, slot)
    booking.status = BOOKING_PAID
    db.session.commit()

    response = client.get(f'/api/bookings/{booking.id}/calendar', headers=auth_headers(1))

    link = urlparse(response.get_json()['calendar_link'])
    params = parse_qs(link.query)
    assert link.netloc == 'calendar.google.com'
    assert params['text'] == ['Cricket at Green Turf Arena']
    assert params['dates'] == [
        f"{slot.start_time:%Y%m%dT%H%M%SZ}/{slot.end_time:%Y%m%dT%H%M%SZ}"
    ]


def test_calendar_link_needs_payment(client, users, slot, stripe_create):
    booking = _book(client, slot)
    response = client.get(f'/api/bookings/{booking.id}/calendar', headers=auth_headers(1))
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Calendar link is only available for paid bookings'


def test_health(client, app):
    with patch('app.check_redis_health', return_value=False):
        response = client.get('/api/health')

    assert response.status_code == 200
    assert response.get_json()['database'] == 'connected'
    assert response.get_json()['redis'] == 'unavailable'
