# services/game_service.py

from datetime import timedelta

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.orm.exc import StaleDataError

from db.extensions import db
from models.booking import Booking, BOOKING_PAID, BOOKING_PENDING
from models.game import (
    Game, ACTIVE_GAME_STATUSES, GAME_OPEN, GAME_FULL, GAME_BOOKED,
    GAME_BOOKING_PENDING, GAME_CANCELLED,
)
from models.timeSlot import SLOT_AVAILABLE
from models.venue import Venue, SubVenue
from services.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from services.pricing import price_for_sport
from services.slot_store import SlotStore
from services.utils import missing_fields, parse_int, parse_uuid, utcnow

HOST_GAME_FIELDS = ['sport', 'venueId', 'subVenueId', 'timeSlotDocId', 'slotId']


class GameService:

    @staticmethod
    def get_game(game_id):
        game = db.session.get(Game, parse_uuid(game_id, 'gameId'))
        if not game:
            raise NotFoundError("Game not found")
        return game

    @staticmethod
    def host_game(host_id, data):
        if missing_fields(data, HOST_GAME_FIELDS):
            raise ValidationError("Missing required fields")

        players_needed = data.get('playersNeeded') or {}
        players_min = players_needed.get('min')
        players_max = players_needed.get('max')
        if players_min is None or players_max is None:
            raise ValidationError("playersNeeded (min/max) are required")
        players_min = parse_int(players_min, 'playersNeeded.min')
        players_max = parse_int(players_max, 'playersNeeded.max')
        if players_min < 1:
            raise ValidationError("playersNeeded.min must be at least 1")
        if players_min > players_max:
            raise ValidationError("min players cannot exceed max players")

        sport = data['sport']
        venue = db.session.get(Venue, parse_int(data['venueId'], 'venueId'))
        if not venue:
            raise NotFoundError("Venue not found")

        sub_venue = db.session.get(SubVenue, parse_int(data['subVenueId'], 'subVenueId'))
        if not sub_venue or sub_venue.venue_id != venue.id:
            raise NotFoundError("SubVenue not found")
        if not sub_venue.offers_sport(sport):
            raise ValidationError("This sport is not available on this subVenue")

        time_slot, slot = SlotStore.get_slot(
            parse_int(data['timeSlotDocId'], 'timeSlotDocId'),
            parse_int(data['slotId'], 'slotId'),
        )
        if time_slot.sub_venue_id != sub_venue.id:
            raise ValidationError("Slot does not belong to this subVenue")
        if slot.status != SLOT_AVAILABLE:
            raise ConflictError("Slot is no longer available")
        if slot.start_time < utcnow():
            raise ValidationError("Cannot host a game in the past")

        price = price_for_sport(slot.prices, sport)
        if not price:
            raise ValidationError("Slot does not have a valid price for this sport")

        GameService.check_no_time_overlap(host_id, slot.start_time, slot.end_time)

        game = Game(
            host_id=host_id,
            sport=sport,
            description=data.get('description'),
            venue_id=venue.id,
            sub_venue_id=sub_venue.id,
            latitude=venue.latitude,
            longitude=venue.longitude,
            city=venue.city,
            state=venue.state,
            time_slot_id=time_slot.id,
            slot_id=slot.id,
            slot_price=price,
            start_time=slot.start_time,
            end_time=slot.end_time,
            players_min=players_min,
            players_max=players_max,
            approved_players=[host_id],
            join_requests=[],
            approx_cost_per_player=round(price / players_max, 2),
            status=GAME_FULL if players_max == 1 else GAME_OPEN,
        )

        try:
            db.session.add(game)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f"🎮 Game {game.id} hosted by {host_id} ({sport})")
        return game

    @staticmethod
    def check_no_time_overlap(user_id, start_time, end_time, exclude_game_id=None):
        """Reject if the user already plays or holds a booking in [start_time, end_time)."""
        games = Game.query.filter(
            Game.status.in_(ACTIVE_GAME_STATUSES),
            Game.start_time < end_time,
            Game.end_time > start_time,
        ).all()
        for game in games:
            if game.id != exclude_game_id and game.is_approved(user_id):
                raise ConflictError("You already have a game scheduled during this time")

        clash = Booking.query.filter(
            Booking.user_id == user_id,
            or_(Booking.status == BOOKING_PAID, Booking.status == BOOKING_PENDING),
            Booking.start_time < end_time,
            Booking.end_time > start_time,
        ).first()
        if clash:
            raise ConflictError("You already have a booking during this time")

    @staticmethod
    def request_join(game_id, user_id):
        game = GameService.get_game(game_id)
        if game.status != GAME_OPEN or game.booking_status == GAME_BOOKED:
            raise ValidationError("This game is not accepting players")
        if game.is_host(user_id) or game.is_approved(user_id):
            raise ValidationError("You are already part of this game")
        if game.has_requested(user_id):
            raise ValidationError("You have already requested to join this game")

        requests = list(game.join_requests or [])
        requests.append({'user': user_id, 'requested_at': utcnow().isoformat()})
        GameService._commit(game, join_requests=requests)

        current_app.logger.info(f"🙋 User {user_id} requested to join game {game.id}")
        return game

    @staticmethod
    def approve_join(game_id, host_id, user_id):
        game = GameService.get_game(game_id)
        if not game.is_host(host_id):
            raise AuthorizationError("Only the host can manage join requests")
        if game.booking_status == GAME_BOOKED or game.status not in (GAME_OPEN,):
            raise ValidationError("This game is not accepting players")
        if not game.has_requested(user_id):
            raise NotFoundError("Join request not found")
        if game.approved_count >= game.players_max:
            raise ValidationError("Game is already full")

        GameService.check_no_time_overlap(user_id, game.start_time, game.end_time,
                                          exclude_game_id=game.id)

        approved = list(game.approved_players or []) + [user_id]
        requests = [r for r in (game.join_requests or []) if r.get('user') != user_id]
        status = GAME_FULL if len(approved) >= game.players_max else game.status
        GameService._commit(game, approved_players=approved, join_requests=requests, status=status)

        current_app.logger.info(f"✅ User {user_id} approved for game {game.id} ({len(approved)}/{game.players_max})")
        return game

    @staticmethod
    def reject_join(game_id, host_id, user_id):
        game = GameService.get_game(game_id)
        if not game.is_host(host_id):
            raise AuthorizationError("Only the host can manage join requests")
        if not game.has_requested(user_id):
            raise NotFoundError("Join request not found")

        requests = [r for r in (game.join_requests or []) if r.get('user') != user_id]
        GameService._commit(game, join_requests=requests)
        return game

    @staticmethod
    def leave_game(game_id, user_id):
        game = GameService.get_game(game_id)
        if game.booking_status == GAME_BOOKED:
            raise ValidationError("Cannot leave the game because slot is already booked")
        if game.status == GAME_BOOKING_PENDING:
            raise ValidationError("Cannot leave the game while its booking is in progress")
        if not game.is_approved(user_id):
            raise ValidationError("You are not approved for this game")
        if game.is_host(user_id):
            raise ValidationError("The host cannot leave the game, cancel it instead")

        approved = [p for p in game.approved_players if p != user_id]
        requests = [r for r in (game.join_requests or []) if r.get('user') != user_id]
        status = game.status
        if status == GAME_FULL and len(approved) < game.players_max:
            status = GAME_OPEN
        GameService._commit(game, approved_players=approved, join_requests=requests, status=status)

        current_app.logger.info(f"👋 User {user_id} left game {game.id}, status {game.status}")
        return game

    @staticmethod
    def cancel_game(game_id, user_id):
        game = GameService.get_game(game_id)
        if not game.is_host(user_id):
            raise AuthorizationError("Only the host can cancel this game")
        if game.booking_status == GAME_BOOKED:
            raise ValidationError("Cannot cancel a game after the slot is booked.")
        if game.status == GAME_BOOKING_PENDING:
            raise ValidationError("Cannot cancel a game while its booking is in progress")
        if game.status == GAME_CANCELLED:
            raise ValidationError("This game has already been cancelled")

        cutoff_hours = current_app.config.get('GAME_CANCELLATION_CUTOFF_HOURS', 2)
        # One second of slack: a game exactly cutoff_hours ahead is still cancellable
        if game.start_time - utcnow() < timedelta(hours=cutoff_hours, seconds=-1):
            raise ValidationError(f"Games can only be cancelled at least {cutoff_hours} hours in advance")

        GameService._commit(game, status=GAME_CANCELLED)
        current_app.logger.info(f"🚫 Game {game.id} cancelled by host {user_id}")
        return game

    @staticmethod
    def _commit(game, **changes):
        """
        Apply related field changes as one UPDATE of the game row. The mapper's
        version check makes a concurrent writer fail instead of interleaving.
        """
        try:
            for field, value in changes.items():
                setattr(game, field, value)
            db.session.commit()
        except StaleDataError:
            db.session.rollback()
            raise ConflictError("This game was updated by someone else, please try again")
        except Exception:
            db.session.rollback()
            raise
