"""Flask application factory for the stream S3 uploader."""

import atexit
import logging

from flask import Flask

from s3_uploader.config import get_settings
from s3_uploader.services.sync_service import SyncService


def create_app(service: SyncService | None = None, start_service: bool = True) -> Flask:
    """Create and configure the Flask application.

    Args:
        service: A prebuilt sync service; built from settings when omitted
        start_service: Start watching the roots before returning
    """
    app = Flask(__name__)

    settings = get_settings()
    app.config["SETTINGS"] = settings

    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    if service is None:
        service = SyncService(settings)
    app.config["SYNC_SERVICE"] = service

    from s3_uploader.routes.status import status_bp

    app.register_blueprint(status_bp)

    if start_service:
        service.start()
        atexit.register(service.stop)

    return app
