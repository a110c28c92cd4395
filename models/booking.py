# models/booking.py
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Uuid
from datetime import datetime
import uuid
from db.extensions import db
from services.pricing import from_minor_units

BOOKING_PENDING = 'Pending'
BOOKING_PAID = 'Paid'
BOOKING_FAILED = 'Failed'


class Booking(db.Model):
    __tablename__ = 'bookings'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    venue_id = Column(Integer, ForeignKey('venues.id'), nullable=False)
    sub_venue_id = Column(Integer, ForeignKey('sub_venues.id'), nullable=False)
    sport = Column(String(50), nullable=False)

    # Snapshot of the venue location at booking time
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    time_slot_id = Column(Integer, ForeignKey('time_slots.id'), nullable=True)
    slot_id = Column(Integer, ForeignKey('time_slot_entries.id'), nullable=True)

    amount = Column(Integer, nullable=False)  # minor units (paise)
    currency = Column(String(10), nullable=False, default='inr')

    stripe_session_id = Column(String(255), unique=True, nullable=False, index=True)
    stripe_payment_intent_id = Column(String(255), nullable=True)
    status = Column(
        db.Enum(BOOKING_PENDING, BOOKING_PAID, BOOKING_FAILED, name='booking_status_enum'),
        nullable=False,
        default=BOOKING_PENDING,
    )
    game_id = Column(Uuid, ForeignKey('games.id'), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Booking id={self.id} user_id={self.user_id} status={self.status}>"

    def to_dict(self):
        return {
            'booking_id': str(self.id),
            'user_id': self.user_id,
            'venue_id': self.venue_id,
            'sub_venue_id': self.sub_venue_id,
            'sport': self.sport,
            'coordinates': [self.longitude, self.latitude],
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'time_slot_id': self.time_slot_id,
            'slot_id': self.slot_id,
            'amount': from_minor_units(self.amount),
            'currency': self.currency,
            'status': self.status,
            'game_id': str(self.game_id) if self.game_id else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
