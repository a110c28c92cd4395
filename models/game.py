# models/game.py
from sqlalchemy import Column, Integer, String, Text, Float, DateTime, ForeignKey, JSON, Uuid
from datetime import datetime
import uuid
from db.extensions import db

GAME_OPEN = 'Open'
GAME_FULL = 'Full'
GAME_BOOKING_PENDING = 'BookingPending'
GAME_CANCELLED = 'Cancelled'
GAME_COMPLETED = 'Completed'

GAME_NOT_BOOKED = 'NotBooked'
GAME_BOOKED = 'Booked'

ACTIVE_GAME_STATUSES = (GAME_OPEN, GAME_FULL, GAME_BOOKING_PENDING)


class Game(db.Model):
    """A hosted session that collects players before its slot is booked."""
    __tablename__ = 'games'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    host_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    sport = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)

    venue_id = Column(Integer, ForeignKey('venues.id'), nullable=False)
    sub_venue_id = Column(Integer, ForeignKey('sub_venues.id'), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)

    time_slot_id = Column(Integer, ForeignKey('time_slots.id'), nullable=False)
    slot_id = Column(Integer, ForeignKey('time_slot_entries.id'), nullable=False)
    slot_price = Column(Integer, nullable=False)  # major units, snapshot at hosting
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)

    players_min = Column(Integer, nullable=False)
    players_max = Column(Integer, nullable=False)
    approved_players = Column(JSON, nullable=False, default=list)  # [user_id, ...]
    join_requests = Column(JSON, nullable=False, default=list)     # [{"user": user_id, "requested_at": iso}]
    approx_cost_per_player = Column(Float, nullable=True)

    status = Column(
        db.Enum(GAME_OPEN, GAME_FULL, GAME_BOOKING_PENDING, GAME_CANCELLED, GAME_COMPLETED,
                name='game_status_enum'),
        nullable=False,
        default=GAME_OPEN,
    )
    booking_status = Column(
        db.Enum(GAME_NOT_BOOKED, GAME_BOOKED, name='game_booking_status_enum'),
        nullable=False,
        default=GAME_NOT_BOOKED,
    )

    version_id = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Concurrent writers of the same game fail with StaleDataError instead of overwriting
    __mapper_args__ = {'version_id_col': version_id}

    def is_host(self, user_id):
        return self.host_id == user_id

    def is_approved(self, user_id):
        return user_id in (self.approved_players or [])

    def has_requested(self, user_id):
        return any(r.get('user') == user_id for r in (self.join_requests or []))

    @property
    def approved_count(self):
        return len(self.approved_players or [])

    @property
    def capacity_status(self):
        """Open or Full by head count alone."""
        return GAME_FULL if self.approved_count >= self.players_max else GAME_OPEN

    def __repr__(self):
        return f"<Game id={self.id} sport={self.sport} status={self.status}>"

    def to_dict(self):
        return {
            'id': str(self.id),
            'host': self.host_id,
            'sport': self.sport,
            'description': self.description,
            'venue': {
                'venue_id': self.venue_id,
                'city': self.city,
                'state': self.state,
                'coordinates': [self.longitude, self.latitude],
            },
            'sub_venue_id': self.sub_venue_id,
            'slot': {
                'time_slot_id': self.time_slot_id,
                'slot_id': self.slot_id,
                'price': self.slot_price,
                'start_time': self.start_time.isoformat(),
                'end_time': self.end_time.isoformat(),
            },
            'players_needed': {'min': self.players_min, 'max': self.players_max},
            'approved_players': list(self.approved_players or []),
            'join_requests': list(self.join_requests or []),
            'approx_cost_per_player': self.approx_cost_per_player,
            'status': self.status,
            'booking_status': self.booking_status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
