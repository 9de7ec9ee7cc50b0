"""Minimal Flask server exposing language recommendations over HTTP."""

from __future__ import annotations

from flask import Flask, jsonify, request

from polyfunc import __version__
from polyfunc.config import Config
from polyfunc.profiles import ProfileRegistry, builtin_registry, normalize_query, rank


def create_app(config: Config | None = None, registry: ProfileRegistry | None = None) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    config = config if config is not None else Config()
    registry = registry if registry is not None else builtin_registry()

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok", "version": __version__})

    @app.route("/languages", methods=["GET"])
    def languages():
        return jsonify([profile.to_dict() for profile in registry])

    @app.route("/config", methods=["GET"])
    def show_config():
        return jsonify(config.redacted())

    @app.route("/recommend", methods=["POST", "OPTIONS"])
    def recommend():
        if request.method == "OPTIONS":
            return "", 204

        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400

        query = normalize_query(data)
        ranking = rank(registry, query)
        if not ranking:
            return jsonify({"language": None, "score": None, "profile": None, "ranking": []})

        best = ranking[0]
        return jsonify({
            "language": best.language,
            "score": round(best.score, 3),
            "profile": best.profile.to_dict(),
            "ranking": [{"language": r.language, "score": round(r.score, 3)} for r in ranking],
        })

    return app
