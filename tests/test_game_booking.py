from unittest.mock import patch

import stripe

from db.extensions import db
from models.booking import Booking, BOOKING_PENDING
from models.game import GAME_BOOKING_PENDING, GAME_BOOKED, GAME_CANCELLED, GAME_FULL, GAME_OPEN
from models.timeSlot import SLOT_AVAILABLE, SLOT_BOOKED
from tests.helpers import auth_headers


def test_host_starts_game_booking(client, make_game, slot, stripe_create):
    game = make_game(players_min=2, approved=[1, 2])

    response = client.post(f'/api/bookings/game/{game.id}', headers=auth_headers(1))

    assert response.status_code == 201
    booking = Booking.query.one()
    assert booking.game_id == game.id
    assert booking.status == BOOKING_PENDING
    assert game.status == GAME_BOOKING_PENDING
    assert slot.status == SLOT_BOOKED

    kwargs = stripe_create.call_args.kwargs
    assert kwargs['metadata']['type'] == 'game'
    assert kwargs['metadata']['gameId'] == str(game.id)
    assert kwargs['line_items'][0]['price_data']['product_data']['name'] == 'Game Booking - Cricket'


def test_not_enough_players(client, make_game, slot, stripe_create):
    game = make_game(players_min=5, players_max=10, approved=[1, 2, 3, 4])

    response = client.post(f'/api/bookings/game/{game.id}', headers=auth_headers(1))

    assert response.status_code == 400
    assert response.get_json()['message'] == 'Need at least 5 players to book'
    assert slot.status == SLOT_AVAILABLE
    stripe_create.assert_not_called()


def test_only_host_can_book(client, make_game, stripe_create):
    game = make_game(approved=[1, 2])

    response = client.post(f'/api/bookings/game/{game.id}', headers=auth_headers(2))

    assert response.status_code == 403
    assert response.get_json()['message'] == 'Only the host can start booking'


def test_unknown_game(client, users):
    response = client.post('/api/bookings/game/8a5f2ef4-3c1b-4d52-9d0e-3f1b6a2b9c11',
                           headers=auth_headers(1))
    assert response.status_code == 404
    assert response.get_json()['message'] == 'Game not found'


def test_malformed_game_id(client, users):
    response = client.post('/api/bookings/game/not-a-uuid', headers=auth_headers(1))
    assert response.status_code == 400


def test_game_already_booked(client, make_game):
    game = make_game(approved=[1, 2], status=GAME_FULL, booking_status=GAME_BOOKED)

    response = client.post(f'/api/bookings/game/{game.id}', headers=auth_headers(1))

    assert response.status_code == 400
    assert response.get_json()['message'] == 'This game is already booked or completed'


def test_cancelled_game(client, make_game):
    game = make_game(approved=[1, 2], status=GAME_CANCELLED)

    response = client.post(f'/api/bookings/game/{game.id}', headers=auth_headers(1))

    assert response.get_json()['message'] == 'This game has been cancelled'


def test_booking_already_in_progress(client, make_game, stripe_create):
    game = make_game(approved=[1, 2])
    client.post(f'/api/bookings/game/{game.id}', headers=auth_headers(1))

    response = client.post(f'/api/bookings/game/{game.id}', headers=auth_headers(1))

    assert response.status_code == 400
    assert response.get_json()['message'] == 'A booking is already in progress for this game'
    assert Booking.query.count() == 1


def test_game_charges_price_captured_at_hosting(client, make_game, slot, stripe_create):
    game = make_game(approved=[1, 2], slot_price=1000)
    slot.prices = {'Cricket': 4000}
    db.session.commit()

    client.post(f'/api/bookings/game/{game.id}', headers=auth_headers(1))

    assert Booking.query.one().amount == 100000


def test_stripe_failure_leaves_game_open(client, make_game, slot):
    game = make_game(approved=[1, 2])

    with patch('stripe.checkout.Session.create', side_effect=stripe.APIConnectionError("down")):
        response = client.post(f'/api/bookings/game/{game.id}', headers=auth_headers(1))

    assert response.status_code == 500
    assert game.status == GAME_OPEN
    assert slot.status == SLOT_AVAILABLE
    assert Booking.query.count() == 0


def test_demo_mode_marks_game_booked(app, client, make_game, stripe_create):
    app.config['BYPASS_STRIPE_PAYMENT'] = True
    game = make_game(approved=[1, 2])

    response = client.post(f'/api/bookings/game/{game.id}', headers=auth_headers(1))

    assert response.status_code == 201
    assert game.status == GAME_OPEN
    assert game.booking_status == GAME_BOOKED
