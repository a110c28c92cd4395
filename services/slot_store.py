# services/slot_store.py

from flask import current_app
from sqlalchemy import or_, update

from db.extensions import db
from models.timeSlot import TimeSlot, SlotEntry, SLOT_AVAILABLE, SLOT_BOOKED
from services.exceptions import NotFoundError


class SlotStore:
    """
    Reads and writes slot entries.

    A slot's ``status`` column is the lock. ``lock_slot`` is the only way a slot
    goes from available to booked, and it does so with one conditional UPDATE,
    so among concurrent callers exactly one sees a matched row.
    """

    @staticmethod
    def get_time_slot(time_slot_id):
        return db.session.get(TimeSlot, time_slot_id)

    @staticmethod
    def get_slot(time_slot_id, slot_id):
        """Return (TimeSlot, SlotEntry) or raise NotFoundError."""
        time_slot = db.session.get(TimeSlot, time_slot_id)
        if not time_slot:
            raise NotFoundError("TimeSlot document not found")

        slot = time_slot.get_slot(slot_id)
        if not slot:
            raise NotFoundError("Slot not found")
        return time_slot, slot

    @staticmethod
    def lock_slot(time_slot_id, slot_id, sport, holder):
        """
        Flip a slot from available to booked for ``holder`` (a booking id).
        Returns True if this call won the slot.
        """
        result = db.session.execute(
            update(SlotEntry)
            .where(
                SlotEntry.id == slot_id,
                SlotEntry.time_slot_id == time_slot_id,
                SlotEntry.status == SLOT_AVAILABLE,
            )
            .values(status=SLOT_BOOKED, booked_for_sport=sport, held_by=str(holder))
            .execution_options(synchronize_session=False)
        )
        db.session.commit()

        locked = result.rowcount == 1
        if locked:
            current_app.logger.info(f"🔒 Slot {time_slot_id}/{slot_id} locked for {holder}")
        else:
            current_app.logger.info(f"⛔ Slot {time_slot_id}/{slot_id} lock lost for {holder}")
        return locked

    @staticmethod
    def release_slot(time_slot_id, slot_id, holder=None, or_unheld=False):
        """
        Put a slot back to available.

        Without ``holder`` the release is unconditional: only callers that own
        the lock (compensation) may do that. With ``holder`` the slot is
        released only while that holder still owns it; ``or_unheld`` also
        matches locks taken before holders were recorded. The check is part
        of the UPDATE, so a lock won concurrently is never cleared.
        """
        stmt = update(SlotEntry).where(
            SlotEntry.id == slot_id,
            SlotEntry.time_slot_id == time_slot_id,
        )
        if holder is not None and or_unheld:
            stmt = stmt.where(or_(SlotEntry.held_by == str(holder), SlotEntry.held_by.is_(None)))
        elif holder is not None:
            stmt = stmt.where(SlotEntry.held_by == str(holder))

        result = db.session.execute(
            stmt.values(status=SLOT_AVAILABLE, booked_for_sport=None, held_by=None)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()

        released = result.rowcount == 1
        if released:
            current_app.logger.info(f"🔓 Slot {time_slot_id}/{slot_id} released")
        else:
            current_app.logger.warning(
                f"⚠️  Slot {time_slot_id}/{slot_id} not released (holder={holder})"
            )
        return released

    @staticmethod
    def read_slot_state(time_slot_id, slot_id):
        """Fresh (status, held_by) straight from the database, or None."""
        row = db.session.execute(
            db.select(SlotEntry.status, SlotEntry.held_by).where(
                SlotEntry.id == slot_id,
                SlotEntry.time_slot_id == time_slot_id,
            )
        ).first()
        return (row.status, row.held_by) if row else None

    @staticmethod
    def find_slot_by_time(sub_venue_id, start_time, end_time):
        """
        Locate a slot from a booking's times. Used only for bookings that
        predate stored slot references.
        """
        time_slot = TimeSlot.query.filter_by(
            sub_venue_id=sub_venue_id,
            date=start_time.date(),
        ).first()
        if not time_slot:
            return None, None

        slot = next(
            (s for s in time_slot.slots
             if s.start_time == start_time and s.end_time == end_time),
            None,
        )
        return time_slot, slot
