# services/webhook_service.py

import uuid

import redis
from flask import current_app

from db.extensions import db, redis_client
from models.booking import Booking, BOOKING_PAID, BOOKING_FAILED
from models.game import Game, GAME_OPEN, GAME_BOOKED, ACTIVE_GAME_STATUSES
from services.notification_service import NotificationService
from services.slot_store import SlotStore

EVENT_KEY_PREFIX = 'stripe_event'


class WebhookService:
    """
    Applies verified Stripe events to bookings, games and slots.

    Every handler is safe to run twice: Stripe redelivers on any non-2xx, and
    the Redis event log only shortcuts the common duplicate case.
    """

    @staticmethod
    def handle_event(event):
        event_id = event.get('id')
        event_type = event.get('type', '')
        current_app.logger.info(f"📨 Webhook received: {event_type} [ID: {event_id}]")

        if event_id and WebhookService._already_processed(event_id):
            current_app.logger.info(f"🔁 Event {event_id} already processed, skipping")
            return {'event_type': event_type, 'handled': False, 'duplicate': True}

        obj = (event.get('data') or {}).get('object') or {}
        handler = EVENT_HANDLERS.get(event_type)
        if handler:
            handler(obj)
        elif event_type == 'payment_intent.payment_failed':
            # Release is left to checkout.session.expired so the user can still retry
            current_app.logger.error(f"❌ Payment failed: {obj.get('id')}")
        elif event_type == 'payment_intent.succeeded':
            current_app.logger.info(f"💰 Payment succeeded: {obj.get('id')}")
        else:
            current_app.logger.warning(f"⚠️  Unhandled event type {event_type}")

        if event_id:
            WebhookService._remember(event_id)
        return {'event_type': event_type, 'handled': handler is not None}

    @staticmethod
    def handle_session_completed(session):
        session_id = session.get('id')
        current_app.logger.info(
            f"Checkout session completed: {session_id}, Status: {session.get('payment_status')}"
        )

        metadata = session.get('metadata') or {}
        booking = Booking.query.filter_by(stripe_session_id=session_id).first()
        if booking is None and metadata.get('bookingId'):
            # Paid on a session a retry replaced; the booking still owns the slot
            booking_id = WebhookService._as_uuid(metadata['bookingId'])
            booking = db.session.get(Booking, booking_id) if booking_id else None
            if booking is not None:
                current_app.logger.info(
                    f"Session {session_id} was superseded, applying payment to booking {booking.id}"
                )
        if not booking:
            current_app.logger.warning(f"⚠️  No booking found for session {session_id}")
            return

        WebhookService.mark_paid(booking, session.get('payment_intent'), metadata)

    @staticmethod
    def mark_paid(booking, payment_intent_id, metadata=None):
        """Pending/Failed -> Paid. Paid bookings are left untouched."""
        if booking.status == BOOKING_PAID:
            current_app.logger.info(f"Booking {booking.id} already Paid, nothing to do")
            return False

        metadata = metadata or {}
        try:
            booking.status = BOOKING_PAID
            booking.stripe_payment_intent_id = payment_intent_id

            game = WebhookService._linked_game(booking, metadata)
            if game is not None:
                game.booking_status = GAME_BOOKED
                game.status = game.capacity_status

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f"✅ Booking {booking.id} marked as Paid")
        if game is not None:
            current_app.logger.info(f"🎮 Game {game.id} booking status updated to Booked")

        NotificationService.send_booking_confirmation(booking)
        return True

    @staticmethod
    def handle_session_expired(session):
        session_id = session.get('id')
        metadata = session.get('metadata') or {}
        current_app.logger.info(f"⌛ Checkout session expired: {session_id}")

        booking = Booking.query.filter_by(stripe_session_id=session_id).first()

        if booking is None and metadata.get('bookingId'):
            # A retry replaced this session; the booking and its lock belong to the new one
            booking_id = WebhookService._as_uuid(metadata['bookingId'])
            current = db.session.get(Booking, booking_id) if booking_id else None
            if current is not None:
                current_app.logger.info(
                    f"Session {session_id} superseded for booking {current.id}, ignoring expiry"
                )
                return

        if booking is not None and booking.status == BOOKING_PAID:
            current_app.logger.warning(f"⚠️  Expiry for Paid booking {booking.id} ignored")
            return

        if booking is not None:
            try:
                booking.status = BOOKING_FAILED
                game = WebhookService._linked_game(booking, metadata)
                if game is not None and game.status in ACTIVE_GAME_STATUSES:
                    game.status = GAME_OPEN
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
            current_app.logger.info(f"Booking {booking.id} marked as Failed (expired)")
            if game is not None:
                current_app.logger.info(f"🎮 Game {game.id} status reset to Open (booking expired)")

        WebhookService._release_slot(session_id, booking, metadata)

    @staticmethod
    def _release_slot(session_id, booking, metadata):
        holder = booking.id if booking is not None else metadata.get('bookingId')

        if metadata.get('timeSlotDocId') and metadata.get('slotId'):
            try:
                time_slot_id = int(metadata['timeSlotDocId'])
                slot_id = int(metadata['slotId'])
            except (TypeError, ValueError):
                current_app.logger.error(f"❌ Bad slot metadata on session {session_id}: {metadata}")
                return
            SlotStore.release_slot(time_slot_id, slot_id, holder=holder)
            current_app.logger.info(f"Slot released via metadata for session {session_id}")
            return

        if booking is None or not booking.sub_venue_id:
            current_app.logger.warning(f"⚠️  No way to locate the slot for session {session_id}")
            return

        # Sessions created before slot references were stored: match on date and times
        time_slot, slot = SlotStore.find_slot_by_time(
            booking.sub_venue_id, booking.start_time, booking.end_time
        )
        if slot is None:
            current_app.logger.warning(f"⚠️  Fallback slot lookup failed for booking {booking.id}")
            return
        if not SlotStore.release_slot(time_slot.id, slot.id, holder=booking.id, or_unheld=True):
            current_app.logger.warning(
                f"⚠️  Slot {time_slot.id}/{slot.id} is held by another booking, not releasing"
            )
            return
        current_app.logger.info(f"Slot released via fallback for booking {booking.id}")

    @staticmethod
    def _linked_game(booking, metadata):
        game_id = booking.game_id
        if game_id is None and metadata.get('gameId'):
            game_id = WebhookService._as_uuid(metadata['gameId'])
        if game_id is None:
            return None
        return db.session.get(Game, game_id)

    @staticmethod
    def _as_uuid(value):
        try:
            return uuid.UUID(str(value))
        except ValueError:
            return None

    @staticmethod
    def _already_processed(event_id):
        try:
            return redis_client.exists(f"{EVENT_KEY_PREFIX}:{event_id}") > 0
        except redis.exceptions.RedisError as e:
            current_app.logger.warning(f"⚠️  Redis unavailable for event dedupe: {str(e)}")
            return False

    @staticmethod
    def _remember(event_id):
        ttl = current_app.config.get('WEBHOOK_EVENT_TTL_SECONDS', 7 * 24 * 3600)
        try:
            redis_client.setex(f"{EVENT_KEY_PREFIX}:{event_id}", ttl, 1)
        except redis.exceptions.RedisError as e:
            current_app.logger.warning(f"⚠️  Could not record event {event_id}: {str(e)}")


EVENT_HANDLERS = {
    'checkout.session.completed': WebhookService.handle_session_completed,
    'checkout.session.expired': WebhookService.handle_session_expired,
}
