# services/reservation_service.py

import uuid
from dataclasses import dataclass
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from db.extensions import db
from models.booking import Booking, BOOKING_PENDING, BOOKING_PAID
from models.game import GAME_BOOKING_PENDING, GAME_BOOKED
from models.timeSlot import SLOT_AVAILABLE
from models.venue import Venue, SubVenue
from services.exceptions import ConflictError, ConfigurationError, NotFoundError, ValidationError
from services.pricing import price_for_sport, to_minor_units
from services.slot_store import SlotStore
from services.utils import utcnow

SLOT_UNAVAILABLE = "Slot is no longer available"


@dataclass
class ReservationResult:
    booking: Booking
    redirect_url: str
    demo_mode: bool = False


def require_gateway(gateway):
    if gateway is None:
        raise ConfigurationError("STRIPE_SECRET_KEY is not set in environment variables")
    return gateway


class ReservationService:
    """
    validate -> lock slot -> payment session -> persist booking, with the slot
    released again if anything after the lock fails. Shared by direct and game
    bookings.
    """

    @staticmethod
    def reserve(user_id, sub_venue_id, time_slot_id, slot_id, sport, gateway,
                game=None, price: Optional[int] = None) -> ReservationResult:
        # Step 1: validation (fast-path rejections only; the lock decides)
        time_slot, slot = SlotStore.get_slot(time_slot_id, slot_id)
        if time_slot.sub_venue_id != sub_venue_id:
            raise ValidationError("Slot does not belong to this subVenue")
        if slot.status != SLOT_AVAILABLE:
            raise ConflictError(SLOT_UNAVAILABLE)
        if slot.start_time < utcnow():
            raise ValidationError("Cannot book a slot in the past")

        if price is None:
            price = price_for_sport(slot.prices, sport)
        if not price:
            raise ValidationError("Sport price not available for this slot")
        amount = to_minor_units(price)

        # Step 2: sub-venue -> venue, for the coordinate snapshot
        venue = ReservationService.resolve_venue(sub_venue_id)

        start_time, end_time = slot.start_time, slot.end_time
        latitude, longitude = venue.latitude, venue.longitude
        venue_id = venue.id

        # Step 3: atomic lock
        booking_id = uuid.uuid4()
        if not SlotStore.lock_slot(time_slot_id, slot_id, sport, holder=booking_id):
            raise ConflictError(SLOT_UNAVAILABLE)

        demo_mode = current_app.config.get('BYPASS_STRIPE_PAYMENT', False)
        currency = current_app.config.get('BOOKING_CURRENCY', 'inr')
        booking_type = 'game' if game is not None else 'direct'

        try:
            # Step 4: payment session
            if demo_mode:
                current_app.logger.info(f"[DEMO MODE] Bypassing Stripe payment for booking {booking_id}")
                session_id = f"demo_session_{booking_id}"
                payment_intent_id = f"demo_payment_{booking_id}"
                redirect_url = "/my-bookings"
                status = BOOKING_PAID
            else:
                description = (f"Game Booking - {sport}" if game is not None
                               else f"Direct Venue Booking - {sport}")
                session = require_gateway(gateway).create_session(
                    amount=amount,
                    currency=currency,
                    description=description,
                    metadata={
                        'type': booking_type,
                        'userId': user_id,
                        'bookingId': booking_id,
                        'timeSlotDocId': time_slot_id,
                        'slotId': slot_id,
                        'gameId': game.id if game is not None else None,
                    },
                )
                session_id = session.session_id
                payment_intent_id = None
                redirect_url = session.redirect_url
                status = BOOKING_PENDING

            # Step 5: persist
            booking = Booking(
                id=booking_id,
                user_id=user_id,
                venue_id=venue_id,
                sub_venue_id=sub_venue_id,
                sport=sport,
                latitude=latitude,
                longitude=longitude,
                start_time=start_time,
                end_time=end_time,
                time_slot_id=time_slot_id,
                slot_id=slot_id,
                amount=amount,
                currency=currency,
                stripe_session_id=session_id,
                stripe_payment_intent_id=payment_intent_id,
                status=status,
                game_id=game.id if game is not None else None,
            )
            db.session.add(booking)

            if game is not None:
                if demo_mode:
                    game.status = game.capacity_status
                    game.booking_status = GAME_BOOKED
                else:
                    game.status = GAME_BOOKING_PENDING

            db.session.commit()
        except Exception:
            # Step 6: compensation, then the original error
            db.session.rollback()
            ReservationService.compensate(time_slot_id, slot_id)
            raise

        current_app.logger.info(
            f"✅ Booking created: {booking.id} [User: {user_id}, Type: {booking_type}, Status: {status}]"
        )
        return ReservationResult(booking=booking, redirect_url=redirect_url, demo_mode=demo_mode)

    @staticmethod
    def resolve_venue(sub_venue_id):
        sub_venue = db.session.get(SubVenue, sub_venue_id)
        if not sub_venue:
            raise NotFoundError("SubVenue not found")
        venue = db.session.get(Venue, sub_venue.venue_id)
        if not venue:
            raise NotFoundError("Venue not found")
        return venue

    @staticmethod
    def compensate(time_slot_id, slot_id):
        """Unconditional unlock; only callers that hold the lock may use it."""
        try:
            SlotStore.release_slot(time_slot_id, slot_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.critical(
                f"🚨 Failed to release slot {time_slot_id}/{slot_id} after booking failure: {str(e)}",
                exc_info=True,
            )
