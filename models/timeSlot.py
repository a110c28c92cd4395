# models/timeSlot.py
from sqlalchemy import Column, Integer, String, ForeignKey, Date, DateTime, JSON
from sqlalchemy.orm import relationship
from db.extensions import db
from services.pricing import normalize_prices

SLOT_AVAILABLE = 'available'
SLOT_BOOKED = 'booked'


class TimeSlot(db.Model):
    """All bookable intervals of one sub-venue on one calendar date."""
    __tablename__ = 'time_slots'

    id = Column(Integer, primary_key=True)
    sub_venue_id = Column(Integer, ForeignKey('sub_venues.id'), nullable=False, index=True)
    date = Column(Date, nullable=False)

    slots = relationship(
        'SlotEntry',
        back_populates='time_slot',
        cascade="all, delete-orphan",
        order_by='SlotEntry.start_time',
    )

    __table_args__ = (db.UniqueConstraint('sub_venue_id', 'date', name='unique_sub_venue_date'),)

    def get_slot(self, slot_id):
        return next((s for s in self.slots if s.id == slot_id), None)

    def add_entry(self, start_time, end_time, prices):
        if end_time <= start_time:
            raise ValueError("Slot end time must be after its start time")
        for existing in self.slots:
            if start_time < existing.end_time and end_time > existing.start_time:
                raise ValueError(
                    f"Slot {start_time:%H:%M}-{end_time:%H:%M} overlaps an existing slot"
                )
        entry = SlotEntry(start_time=start_time, end_time=end_time, prices=normalize_prices(prices))
        self.slots.append(entry)
        return entry

    def __repr__(self):
        return f"<TimeSlot sub_venue_id={self.sub_venue_id} date={self.date}>"


class SlotEntry(db.Model):
    __tablename__ = 'time_slot_entries'

    id = Column(Integer, primary_key=True)
    time_slot_id = Column(Integer, ForeignKey('time_slots.id'), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(
        db.Enum(SLOT_AVAILABLE, SLOT_BOOKED, name='slot_status_enum'),
        nullable=False,
        default=SLOT_AVAILABLE,
    )
    booked_for_sport = Column(String(50), nullable=True)
    prices = Column(JSON, nullable=False, default=dict)  # {"Cricket": 1000}, major units
    held_by = Column(String(36), nullable=True)  # booking id owning the lock

    time_slot = relationship('TimeSlot', back_populates='slots')

    def to_dict(self):
        return {
            'slot_id': self.id,
            'time_slot_id': self.time_slot_id,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'status': self.status,
            'booked_for_sport': self.booked_for_sport,
            'prices': normalize_prices(self.prices),
        }

    def __repr__(self):
        return f"<SlotEntry id={self.id} {self.start_time} - {self.end_time} status={self.status}>"
