# services/booking_service.py

from flask import current_app

from db.extensions import db
from models.booking import Booking, BOOKING_PAID, BOOKING_PENDING, BOOKING_FAILED
from models.game import (
    Game, GAME_BOOKED, GAME_BOOKING_PENDING, GAME_CANCELLED, GAME_COMPLETED,
)
from models.timeSlot import SLOT_BOOKED
from models.venue import Venue
from services.exceptions import (
    AuthorizationError, ConflictError, NotFoundError, ValidationError,
)
from services.reservation_service import ReservationService, SLOT_UNAVAILABLE, require_gateway
from services.slot_store import SlotStore
from services.utils import (
    build_google_calendar_link, missing_fields, parse_int, parse_uuid, utcnow,
)
from services.webhook_service import WebhookService

DIRECT_BOOKING_FIELDS = ['subVenueId', 'timeSlotDocId', 'slotId', 'sport']


class BookingService:

    @staticmethod
    def create_direct_booking(user_id, data, gateway):
        if missing_fields(data, DIRECT_BOOKING_FIELDS):
            raise ValidationError("Missing required fields")

        return ReservationService.reserve(
            user_id=user_id,
            sub_venue_id=parse_int(data['subVenueId'], 'subVenueId'),
            time_slot_id=parse_int(data['timeSlotDocId'], 'timeSlotDocId'),
            slot_id=parse_int(data['slotId'], 'slotId'),
            sport=data['sport'],
            gateway=gateway,
        )

    @staticmethod
    def start_game_booking(user_id, game_id, gateway):
        game = db.session.get(Game, parse_uuid(game_id, 'gameId'))
        if not game:
            raise NotFoundError("Game not found")

        if not game.is_host(user_id):
            raise AuthorizationError("Only the host can start booking")
        if game.booking_status == GAME_BOOKED or game.status == GAME_COMPLETED:
            raise ValidationError("This game is already booked or completed")
        if game.status == GAME_CANCELLED:
            raise ValidationError("This game has been cancelled")
        if game.status == GAME_BOOKING_PENDING:
            raise ValidationError("A booking is already in progress for this game")
        if game.approved_count < game.players_min:
            raise ValidationError(f"Need at least {game.players_min} players to book")

        return ReservationService.reserve(
            user_id=user_id,
            sub_venue_id=game.sub_venue_id,
            time_slot_id=game.time_slot_id,
            slot_id=game.slot_id,
            sport=game.sport,
            gateway=gateway,
            game=game,
            price=game.slot_price,
        )

    @staticmethod
    def retry_payment(user_id, booking_id, gateway):
        """
        New payment session for a Pending or Failed booking, keeping its id and
        amount. The slot is only ever released here if this call locked it.
        """
        if not booking_id:
            raise ValidationError("Booking ID is required")

        booking = Booking.query.filter_by(
            id=parse_uuid(booking_id, 'bookingId'), user_id=user_id
        ).first()
        if not booking:
            raise NotFoundError("Booking not found")
        if booking.status == BOOKING_PAID:
            raise ValidationError("Booking is already paid")
        if booking.start_time < utcnow():
            raise ValidationError("Cannot retry payment for a past booking")
        if booking.status not in (BOOKING_PENDING, BOOKING_FAILED):
            raise ValidationError("Invalid booking status for retry")

        time_slot_id, slot_id = BookingService._slot_location(booking)
        previous_status = booking.status
        holder = booking.id

        did_lock = SlotStore.lock_slot(time_slot_id, slot_id, booking.sport, holder=holder)
        if not did_lock:
            if previous_status == BOOKING_FAILED:
                raise ConflictError(SLOT_UNAVAILABLE)
            state = SlotStore.read_slot_state(time_slot_id, slot_id)
            if state is None or state != (SLOT_BOOKED, str(holder)):
                current_app.logger.warning(
                    f"⚠️  Retry for booking {holder}: slot {time_slot_id}/{slot_id} not held by it ({state})"
                )
                raise ConflictError("Slot is not available for retry")

        try:
            session = require_gateway(gateway).create_session(
                amount=booking.amount,
                currency=booking.currency,
                description=f"Booking Retry - {booking.sport or 'Venue'}",
                metadata={
                    'type': 'game' if booking.game_id else 'direct',
                    'retry': 'true',
                    'userId': user_id,
                    'bookingId': booking.id,
                    'timeSlotDocId': time_slot_id,
                    'slotId': slot_id,
                    'gameId': booking.game_id,
                },
            )

            booking.stripe_session_id = session.session_id
            booking.status = BOOKING_PENDING

            if booking.game_id:
                game = db.session.get(Game, booking.game_id)
                if game:
                    game.status = GAME_BOOKING_PENDING
                    current_app.logger.info(f"🎮 Game {game.id} marked as booking in progress (retry)")

            db.session.commit()
        except Exception:
            db.session.rollback()
            if did_lock:
                SlotStore.release_slot(time_slot_id, slot_id, holder=holder)
            raise

        current_app.logger.info(
            f"🔁 Booking retry initiated: {booking.id} [User: {user_id}, New Session: {session.session_id}]"
        )
        return booking, session.redirect_url

    @staticmethod
    def _slot_location(booking):
        if booking.time_slot_id and booking.slot_id:
            return booking.time_slot_id, booking.slot_id

        if not booking.sub_venue_id:
            raise ValidationError("Invalid booking: missing subVenueId")
        time_slot, slot = SlotStore.find_slot_by_time(
            booking.sub_venue_id, booking.start_time, booking.end_time
        )
        if not time_slot:
            raise NotFoundError("TimeSlot not found")
        if not slot:
            raise NotFoundError("Slot not found")
        return time_slot.id, slot.id

    @staticmethod
    def list_user_bookings(user_id):
        return (
            Booking.query.filter_by(user_id=user_id)
            .order_by(Booking.created_at.desc())
            .all()
        )

    @staticmethod
    def verify_payment(user_id, session_id, gateway):
        """
        Status check for the payment-success page. A Pending booking is checked
        against Stripe directly in case the webhook has not arrived yet.
        """
        if not session_id:
            raise ValidationError("session_id is required")

        booking = Booking.query.filter_by(stripe_session_id=session_id, user_id=user_id).first()
        if not booking:
            raise NotFoundError("Booking not found")

        if booking.status == BOOKING_PENDING and gateway is not None:
            session = gateway.retrieve_session(session_id)
            if session.payment_status == 'paid':
                WebhookService.mark_paid(booking, session.payment_intent)

        return booking

    @staticmethod
    def calendar_link(user_id, booking_id):
        booking = Booking.query.filter_by(
            id=parse_uuid(booking_id, 'bookingId'), user_id=user_id
        ).first()
        if not booking:
            raise NotFoundError("Booking not found")
        if booking.status != BOOKING_PAID:
            raise ValidationError("Calendar link is only available for paid bookings")

        venue = db.session.get(Venue, booking.venue_id)
        venue_name = venue.name if venue else 'Venue'
        location = ', '.join(p for p in (venue_name, venue.city if venue else None) if p)
        return build_google_calendar_link(
            title=f"{booking.sport} at {venue_name}",
            start_time=booking.start_time,
            end_time=booking.end_time,
            details=f"Booking {booking.id}",
            location=location,
        )
