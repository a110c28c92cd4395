# services/notification_service.py

from threading import Thread

from flask import current_app
from flask_mail import Message

from db.extensions import db, mail
from models.user import User
from models.venue import Venue
from services.pricing import from_minor_units
from services.utils import build_google_calendar_link, to_local


def send_async_email(app, msg):
    """Send email in a background thread so the webhook can acknowledge quickly."""
    with app.app_context():
        try:
            mail.send(msg)
            app.logger.info("✅ Booking email sent")
        except Exception as e:
            app.logger.error(f"❌ Failed to send booking email: {str(e)}")


class NotificationService:

    @staticmethod
    def send_booking_confirmation(booking):
        """Email the booking owner once payment is confirmed. Returns False if nothing was sent."""
        user = db.session.get(User, booking.user_id)
        if not user or not user.email:
            current_app.logger.warning(f"⚠️  No email on file for booking {booking.id}")
            return False

        venue = db.session.get(Venue, booking.venue_id)
        venue_name = venue.name if venue else 'your venue'
        tz_name = current_app.config.get('VENUE_TIMEZONE', 'Asia/Kolkata')
        local_start = to_local(booking.start_time, tz_name)
        local_end = to_local(booking.end_time, tz_name)

        calendar_link = build_google_calendar_link(
            title=f"{booking.sport} at {venue_name}",
            start_time=booking.start_time,
            end_time=booking.end_time,
            details=f"Booking {booking.id}",
            location=venue_name,
        )

        msg = Message(
            subject=f"Booking Confirmed - {booking.sport} at {venue_name}",
            recipients=[user.email],
        )
        msg.body = f"""
Hi {user.username},

Your booking is confirmed.

Booking ID: {booking.id}
Sport: {booking.sport}
Venue: {venue_name}
When: {local_start.strftime('%d %b %Y, %I:%M %p')} - {local_end.strftime('%I:%M %p')} ({tz_name})
Amount paid: {from_minor_units(booking.amount):.2f} {booking.currency.upper()}

Add it to your calendar: {calendar_link}
"""

        app = current_app._get_current_object()
        Thread(target=send_async_email, args=(app, msg), daemon=True).start()
        current_app.logger.info(f"📧 Confirmation email queued for booking {booking.id}")
        return True
