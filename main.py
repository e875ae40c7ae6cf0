from studio.api.reservations.reservations import reservations_bp
from studio.api.reservations.staff import staff_bp
from studio.api.analytics.reservation_analytics import analytics_bp
from studio.api.communication.notifications import notifications_bp
from studio.api.communication.emails import emails_bp
from studio.api.communication.webhooks import webhooks_bp
from studio.routes.auth import auth_bp
from flask import Flask
from flask_cors import CORS
from flasgger import Swagger
from swagger__config import SWAGGER_CONFIG, SWAGGER_TEMPLATE
import os
import traceback

from studio.config import Config  # noqa: E402
from studio.extensions import db  # noqa: E402
from studio.commands import register_commands  # noqa: E402
from studio.services.email_service import EmailService  # noqa: E402
from studio.services.notification_service import NotificationRelay  # noqa: E402
from studio.services.reservation_store import StoreRegistry  # noqa: E402

BLUEPRINTS = (
    auth_bp,
    reservations_bp,
    staff_bp,
    analytics_bp,
    notifications_bp,
    emails_bp,
    webhooks_bp,
)


def _init_services(app):
    # Per-session reservation stores, opened at login and dropped at logout
    StoreRegistry(session_factory=lambda: db.session, app=app)
    app.extensions["notification_relay"] = NotificationRelay.from_config(app.config)
    app.extensions["email_service"] = EmailService.from_config(app.config)
    print(f"Studio services ready for {app.config['STUDIO_NAME']}")


def _init_docs(app):
    template = dict(SWAGGER_TEMPLATE, host=os.environ.get("API_HOST", "127.0.0.1:5000"))
    Swagger(app, config=SWAGGER_CONFIG, template=template)
    print("API docs at /api/docs")


def create_app(test_config=None):
    """Build the studio API; ``test_config`` overrides Config before db setup."""
    print("Building studio app")
    app = Flask(__name__)
    try:
        app.config.from_object(Config)
        if test_config:
            app.config.update(test_config)

        CORS(app)
        db.init_app(app)
        print(f"Database bound: {app.config['SQLALCHEMY_DATABASE_URI'].split('://')[0]}")

        _init_services(app)
        _init_docs(app)

        for bp in BLUEPRINTS:
            app.register_blueprint(bp)
            print(f"  ✓ {bp.name} -> {bp.url_prefix}")

        register_commands(app)

        @app.route("/")
        def health():
            """
            API status
            ---
            tags:
              - Utility
            responses:
              200:
                description: The studio API is up
            """
            return {"status": "ok", "message": "Backend is running!"}, 200

        if app.config.get("ENABLE_SCHEDULER") and not app.config.get("TESTING"):
            from studio.scheduler import init_scheduler

            init_scheduler(app)

    except Exception as e:
        print(f"Studio app failed to start: {e}")
        print(traceback.format_exc())
        raise

    print(f"Studio app ready with {len(list(app.url_map.iter_rules()))} routes")
    return app


if __name__ == "__main__":
    # Create a .env containing:
    #       DATABASE_URL=mysql+pymysql://<USER>:<PASSWORD>@<HOST>:<PORT>/tattoo_studio
    #       WHATSAPP_WEBHOOK_URL=http://localhost:3001/send-message
    #       WHATSAPP_TARGET_NUMBER=<studio phone>
    studio_app = create_app()
    studio_app.run(
        host="0.0.0.0",
        port=int(os.environ.get("PORT", 5000)),
        debug=os.environ.get("FLASK_ENV") == "development",
    )
