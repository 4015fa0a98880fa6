"""Status routes exposing service health and the pending recordings."""

from flask import Blueprint, Response, current_app, jsonify

from s3_uploader.services.sync_service import SyncService

status_bp = Blueprint("status", __name__)


def _service() -> SyncService:
    service: SyncService = current_app.config["SYNC_SERVICE"]
    return service


@status_bp.route("/health", methods=["GET"])
def health() -> tuple[Response, int]:
    """Report enablement flags, the recording delay and the pending count.

    Returns:
        JSON with status, hls, recordings, recordingDelayMinutes,
        pendingRecordings, bucket, version
    """
    return jsonify(_service().health()), 200


@status_bp.route("/pending", methods=["GET"])
def pending() -> tuple[Response, int]:
    """List recordings waiting for their delayed upload.

    Returns:
        JSON with count and files
    """
    return jsonify(_service().pending()), 200
