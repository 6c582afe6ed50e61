import os

from flask import Flask, jsonify
from flask_cors import CORS

from framestats.config.run_config import RunConfig
from framestats.errors import FrameStatsError, SetupError
from framestats.run_service import RunService
from framestats.utils.logger import configure_logging


def create_app(config=None, run_service: RunService | None = None):
    app = Flask(__name__)
    CORS(app)  # Allow cross-origin requests

    app.config.from_mapping(
        RUN_SERVICE=run_service or RunService(RunConfig.from_env())
    )

    if config:
        app.config.from_mapping(config)

    register_error_handlers(app)

    from framestats.routes.run_routes import runs_bp

    app.register_blueprint(runs_bp)

    return app


def register_error_handlers(app):
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"status": "error", "message": "Resource not found"}), 404

    @app.errorhandler(500)
    def server_error(error):
        return jsonify({"status": "error", "message": "Internal server error"}), 500

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({"status": "error", "message": "Bad request"}), 400

    @app.errorhandler(FrameStatsError)
    def frame_stats_error(error):
        status = 400 if isinstance(error, SetupError) else 500
        return jsonify({"status": "error", "message": str(error)}), status


def serve():
    configure_logging()
    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", 8000))
    create_app().run(host=host, port=port)


if __name__ == "__main__":
    serve()
