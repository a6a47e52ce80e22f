# eld_trip_client/routes/travel.py
"""Trip planning HTTP routes and blueprint configuration."""

import io
import logging

from flask import Blueprint, jsonify, request, send_file

from eld_trip_client.api.bridge import from_history_record, from_submission
from eld_trip_client.api.config import get_map_api_key, get_map_provider_config, get_planner_config
from eld_trip_client.api.errors import (
    InputValidationError,
    PlannerError,
    TransientNetworkError,
    TripClientError,
)
from eld_trip_client.api.planner import get_planner_client
from eld_trip_client.api.runtime.loop import get_event_loop_thread
from eld_trip_client.api.services.form_service import TripForm
from eld_trip_client.api.services.pdf_service import EldPdfService, eld_pdf_filename

logger = logging.getLogger(__name__)


def _status_for(error: TripClientError) -> int:
    if isinstance(error, InputValidationError):
        return 400
    if isinstance(error, PlannerError):
        # Planner-side validation errors pass through; anything else is a bad gateway
        if error.status_code and 400 <= error.status_code < 500:
            return error.status_code
        return 502
    if isinstance(error, TransientNetworkError):
        return 503
    return 500


def create_trips_blueprint(planner=None, loop_thread=None):
    """Create and configure the trips blueprint.

    Args:
        planner: PlannerClient to use; the global one by default
        loop_thread: EventLoopThread that runs planner calls

    Returns:
        Configured Flask Blueprint
    """
    trips_bp = Blueprint("trips", __name__, url_prefix="/trips")

    def _planner():
        return planner or get_planner_client()

    def _run(coro):
        return (loop_thread or get_event_loop_thread()).run(coro)

    @trips_bp.errorhandler(TripClientError)
    def handle_trip_client_error(error):
        status = _status_for(error)
        logger.error(f"Request {request.method} {request.path} failed ({status}): {error}")
        return jsonify({"error": str(error)}), status

    @trips_bp.route("/api/config")
    def api_config():
        """Return map provider configuration for the frontend."""
        config = get_map_provider_config()
        key = get_map_api_key()
        if not key:
            return jsonify({"error": "No map provider key configured"}), 500
        return jsonify({
            "provider": config["provider"],
            "map_key": key,
            "language": config["language"],
        })

    @trips_bp.route("/api/plan", methods=["POST"])
    def api_plan():
        """Validate a plan request, forward it and return the normalized result."""
        body = TripForm.from_wire(request.get_json(silent=True)).build_request()
        payload = _run(_planner().plan_trip(body))
        return jsonify(from_submission(payload).to_dict())

    @trips_bp.route("/api/history", methods=["GET"])
    def api_history():
        limit = request.args.get("limit", default=get_planner_config()["history_limit"], type=int)
        trips = _run(_planner().list_trips(limit))
        return jsonify({"trips": trips})

    @trips_bp.route("/api/history", methods=["DELETE"])
    def api_clear_history():
        deleted = _run(_planner().clear_history(get_planner_config()["history_limit"]))
        return jsonify({"deleted": deleted})

    @trips_bp.route("/api/history/<trip_id>", methods=["GET"])
    def api_history_trip(trip_id):
        record = _run(_planner().get_trip(trip_id))
        return jsonify(from_history_record(record).to_dict())

    @trips_bp.route("/api/history/<trip_id>", methods=["DELETE"])
    def api_delete_trip(trip_id):
        _run(_planner().delete_trip(trip_id))
        return jsonify({"deleted": trip_id})

    @trips_bp.route("/api/history/<trip_id>/eld-pdf")
    def api_eld_pdf(trip_id):
        content = _run(EldPdfService(_planner()).fetch(trip_id))
        return send_file(
            io.BytesIO(content),
            mimetype="application/pdf",
            as_attachment=True,
            download_name=eld_pdf_filename(trip_id),
        )

    @trips_bp.route("/health")
    def health():
        """Health check endpoint, including the planner."""
        try:
            upstream = _run(_planner().health_check())
            planner_status = "ok"
        except TripClientError as e:
            logger.warning(f"Planner health check failed: {e}")
            upstream = {"error": str(e)}
            planner_status = "unavailable"
        return jsonify({
            "status": "ok",
            "service": "trips",
            "planner": planner_status,
            "planner_details": upstream,
        })

    return trips_bp


__all__ = ['create_trips_blueprint']
