from flask import Blueprint, jsonify, request

from framestats.errors import ConfigError
from framestats.run_service import RunAlreadyActiveError
from framestats.utils.flask_helpers import get_run_service

runs_bp = Blueprint("runs", __name__, url_prefix="/api/runs")


@runs_bp.route("", methods=["POST"])
def start_run():
    service = get_run_service()
    overrides = request.get_json(silent=True) or {}

    try:
        config = service.start(overrides)
    except RunAlreadyActiveError as e:
        return jsonify({"status": "error", "message": str(e)}), 409
    except ConfigError as e:
        return jsonify({"status": "error", "message": str(e)}), 400

    return jsonify({"status": "started", "config": config.to_dict()}), 202


@runs_bp.route("/status", methods=["GET"])
def run_status():
    return jsonify(get_run_service().to_json())


@runs_bp.route("/stop", methods=["POST"])
def stop_run():
    if not get_run_service().stop():
        return jsonify({"status": "success", "message": "No run is active"})
    return jsonify({"status": "success", "message": "Run stopped"})
