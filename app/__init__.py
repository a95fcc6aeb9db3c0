# app/__init__.py

import logging
import os
import time
from flask import Flask, request
from flask_cors import CORS
from sqlalchemy import text
from werkzeug.exceptions import HTTPException
from .config import Config
from db.extensions import db, migrate, mail, init_redis, check_redis_health
from controllers.recurring_booking_controller import recurring_bp
from controllers.booking_controller import booking_bp
from services.errors import BookingError


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Front desk dashboard calls the API from the browser
    CORS(app,
         origins=app.config['CORS_ORIGINS'],
         methods=['GET', 'POST', 'PATCH', 'OPTIONS'],
         allow_headers=['Content-Type', 'Authorization', 'Idempotency-Key'],
         supports_credentials=True,
         expose_headers=['Content-Type', 'Authorization'],
         max_age=3600
    )

    db.init_app(app)
    migrate.init_app(app, db)
    mail.init_app(app)
    if app.config['SLOT_LOCK_BACKEND'] == 'redis':
        init_redis(app)

    app.register_blueprint(recurring_bp, url_prefix='/api')
    app.register_blueprint(booking_bp, url_prefix='/api')

    debug_mode = _configure_logging(app)
    _register_request_timing(app, debug_mode)
    _register_error_handlers(app)

    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Database, and Redis when it backs the slot locks."""
        checked_at = time.time()
        try:
            db.session.execute(text('SELECT 1'))
        except Exception as e:
            app.logger.error(f"❌ Health check failed on database: {str(e)}")
            return {'status': 'error', 'database': 'unreachable', 'message': str(e), 'timestamp': checked_at}, 500

        body = {'status': 'ok', 'database': 'connected', 'timestamp': checked_at}
        if app.config['SLOT_LOCK_BACKEND'] == 'redis':
            if not check_redis_health():
                body.update(status='error', redis='unreachable')
                return body, 500
            body['redis'] = 'connected'
        return body, 200

    return app


def _configure_logging(app):
    debug_mode = os.getenv("DEBUG_MODE", "false").lower() == "true"
    log_level = logging.DEBUG if debug_mode else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    app.logger.setLevel(log_level)
    return debug_mode


def _register_request_timing(app, debug_mode):
    slow_ms = app.config.get('SLOW_REQUEST_MS', 500)

    @app.before_request
    def start_timer():
        request.start_time = time.time()
        if debug_mode:
            app.logger.debug(f"🚀 {request.method} {request.path}")

    @app.after_request
    def log_duration(response):
        started = getattr(request, 'start_time', None)
        if started is None:
            return response

        elapsed = (time.time() - started) * 1000
        line = f"{request.method} {request.path} took {elapsed:.2f}ms - Status: {response.status_code}"
        if elapsed > slow_ms:
            app.logger.warning(f"⚠️  SLOW REQUEST: {line}")
        elif debug_mode:
            app.logger.info(f"✅ {line}")
        return response


def _register_error_handlers(app):

    @app.errorhandler(BookingError)
    def handle_booking_error(e):
        if e.retryable:
            app.logger.warning(f"⚠️  {e.error_code} on {request.method} {request.path}: {e.message}")
        else:
            app.logger.info(f"{e.error_code} on {request.method} {request.path}: {e.message}")
        return e.to_dict(), e.status_code

    @app.errorhandler(Exception)
    def handle_exception(e):
        # Routing errors (404, 405) keep their own status
        if isinstance(e, HTTPException):
            return e
        app.logger.error(f"❌ Unhandled exception on {request.method} {request.path}: {str(e)}", exc_info=True)
        return {
            'success': False,
            'error': 'InternalError',
            'message': 'Internal server error. Please try again.',
            'retryable': False,
        }, 500
