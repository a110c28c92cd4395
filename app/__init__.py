# app/__init__.py

import logging
import os
import time
from flask import Flask, request, jsonify
from flask_cors import CORS
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException
from .config import Config
from db.extensions import db, migrate, mail, check_redis_health
from controllers.booking_controller import booking_bp
from controllers.game_controller import game_bp
from services.exceptions import AppError
from services.payment_gateway import StripePaymentGateway


def create_app(config_class=Config):
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config_class)

    CORS(app,
         origins=[
             "http://localhost:3000",
             "http://localhost:3001",
             app.config.get('FRONTEND_URL', 'http://localhost:3000'),
         ],
         methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS'],
         allow_headers=['Content-Type', 'Authorization', 'Stripe-Signature'],
         supports_credentials=True,
         expose_headers=['Content-Type', 'Authorization'],
         max_age=3600
    )

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    mail.init_app(app)

    # Register models with the metadata used by migrations
    from models import user, venue, timeSlot, game, booking  # noqa: F401

    # Configure logging
    debug_mode = os.getenv("DEBUG_MODE", "false").lower() == "true"
    log_level = logging.DEBUG if debug_mode else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    app.logger.setLevel(log_level)

    # Payment gateway; booking routes answer 500 without one
    if app.config.get('STRIPE_SECRET_KEY'):
        app.extensions['payment_gateway'] = StripePaymentGateway.from_config(app.config)
    else:
        app.logger.warning("⚠️  STRIPE_SECRET_KEY not set, payment gateway disabled")
    if app.config.get('BYPASS_STRIPE_PAYMENT'):
        app.logger.warning("⚠️  BYPASS_STRIPE_PAYMENT is on: bookings are confirmed without payment")

    # Register blueprints
    app.register_blueprint(booking_bp, url_prefix='/api')
    app.register_blueprint(game_bp, url_prefix='/api')

    # Request timing middleware for performance monitoring
    @app.before_request
    def before_request():
        request.start_time = time.time()
        if debug_mode:
            app.logger.debug(f"🚀 Started {request.method} {request.path}")

    @app.after_request
    def after_request(response):
        if hasattr(request, 'start_time'):
            elapsed = (time.time() - request.start_time) * 1000

            # Log slow requests (over 500ms)
            if elapsed > 500:
                app.logger.warning(
                    f"⚠️  SLOW REQUEST: {request.method} {request.path} "
                    f"took {elapsed:.2f}ms - Status: {response.status_code}"
                )
            elif debug_mode:
                app.logger.info(
                    f"✅ {request.method} {request.path} "
                    f"took {elapsed:.2f}ms - Status: {response.status_code}"
                )

        return response

    @app.errorhandler(AppError)
    def handle_app_error(e):
        message = e.message
        if e.status_code >= 500:
            app.logger.error(f"❌ {type(e).__name__}: {e.message}", exc_info=True)
            message = 'Internal server error. Please try again.'
        return jsonify({'success': False, 'message': message}), e.status_code

    # Global error handler
    @app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            return jsonify({'success': False, 'message': e.description}), e.code
        app.logger.error(f"❌ Unhandled exception: {str(e)}", exc_info=True)
        return jsonify({
            'success': False,
            'message': 'Internal server error. Please try again.'
        }), 500

    # Health check endpoint
    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Health check endpoint for monitoring"""
        try:
            db.session.execute(text('SELECT 1'))
        except SQLAlchemyError as e:
            app.logger.error(f"❌ Health check failed: {str(e)}")
            return jsonify({
                'status': 'error',
                'database': 'disconnected',
                'timestamp': time.time()
            }), 500

        # Redis only backs webhook de-duplication, so it degrades rather than fails
        return jsonify({
            'status': 'ok',
            'database': 'connected',
            'redis': 'connected' if check_redis_health() else 'unavailable',
            'timestamp': time.time()
        }), 200

    return app
