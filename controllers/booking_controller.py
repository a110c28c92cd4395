from flask import Blueprint, request, jsonify, current_app, g

from controllers.decorators import token_required
from services.booking_service import BookingService
from services.exceptions import WebhookSignatureError
from services.reservation_service import require_gateway
from services.webhook_service import WebhookService

booking_bp = Blueprint('bookings', __name__)


def _gateway():
    return current_app.extensions.get('payment_gateway')


def _reservation_response(result):
    booking = result.booking
    if result.demo_mode:
        return jsonify({
            'success': True,
            'message': 'Booking confirmed (Demo mode - payment bypassed)',
            'booking_id': str(booking.id),
            'demo_mode': True,
            'redirect_url': result.redirect_url,
            'booking': booking.to_dict(),
        }), 201

    return jsonify({
        'success': True,
        'url': result.redirect_url,
        'booking_id': str(booking.id),
    }), 201


@booking_bp.route('/bookings/direct', methods=['POST'])
@token_required
def create_direct_booking():
    data = request.get_json(silent=True) or {}
    result = BookingService.create_direct_booking(g.current_user.id, data, _gateway())
    return _reservation_response(result)


@booking_bp.route('/bookings/game/<game_id>', methods=['POST'])
@token_required
def create_game_booking(game_id):
    result = BookingService.start_game_booking(g.current_user.id, game_id, _gateway())
    return _reservation_response(result)


@booking_bp.route('/bookings/retry', methods=['POST'])
@token_required
def retry_payment():
    data = request.get_json(silent=True) or {}
    booking, redirect_url = BookingService.retry_payment(
        g.current_user.id, data.get('bookingId'), _gateway()
    )
    return jsonify({
        'success': True,
        'url': redirect_url,
        'booking_id': str(booking.id),
    }), 200


@booking_bp.route('/bookings/webhook', methods=['POST'])
def stripe_webhook():
    payload = request.get_data()
    signature = request.headers.get('Stripe-Signature')

    try:
        event = require_gateway(_gateway()).verify_and_parse_event(payload, signature)
    except WebhookSignatureError as e:
        current_app.logger.warning(f"⚠️  Webhook signature verification failed: {str(e)}")
        return jsonify({'success': False, 'message': f"Webhook Error: {str(e)}"}), 400

    try:
        result = WebhookService.handle_event(event)
    except Exception as e:
        # Non-2xx makes Stripe redeliver the event
        current_app.logger.error(f"❌ Webhook processing failed: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'message': 'Webhook processing failed'}), 500

    return jsonify({'success': True, 'received': True, **result}), 200


@booking_bp.route('/bookings/my-bookings', methods=['GET'])
@token_required
def my_bookings():
    bookings = BookingService.list_user_bookings(g.current_user.id)
    return jsonify({
        'success': True,
        'bookings': [b.to_dict() for b in bookings],
    }), 200


@booking_bp.route('/bookings/verify-payment', methods=['GET'])
@token_required
def verify_payment():
    booking = BookingService.verify_payment(
        g.current_user.id, request.args.get('session_id'), _gateway()
    )
    return jsonify({
        'success': True,
        'status': booking.status,
        'booking': booking.to_dict(),
    }), 200


@booking_bp.route('/bookings/<booking_id>/calendar', methods=['GET'])
@token_required
def calendar_link(booking_id):
    link = BookingService.calendar_link(g.current_user.id, booking_id)
    return jsonify({'success': True, 'calendar_link': link}), 200
