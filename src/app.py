"""Flask HTTP server for the lytnit link shortener.

This module implements the HTTP server with routes for link creation and
redirection.
"""

import logging

from flask import Flask, Response, jsonify, redirect, request

from src.base62 import decode
from src.capacity import CapacityComputationError
from src.config import Config
from src.id_generator import ExhaustedAttempts
from src.link_handler import LinkHandler, LinkHandlerError
from src.permutation import NoCoprimeGeneratorFound

# Configure logging
logger = logging.getLogger(__name__)

# Longest accepted link ID; far beyond any tier the counter will reach
MAX_ID_LENGTH = 32


def _is_valid_id(link_id: str) -> bool:
    if not link_id or len(link_id) > MAX_ID_LENGTH:
        return False
    try:
        decode(link_id)
    except ValueError:
        return False
    return True


def create_app(config: Config, link_handler: LinkHandler) -> Flask:
    """Create and configure Flask application.

    Args:
        config: Configuration instance
        link_handler: Handler for link operations

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    @app.route("/", methods=["GET"])
    def health_check():
        """Health check endpoint.

        Returns:
            200: OK
        """
        return Response("OK\n", status=200, mimetype="text/plain")

    @app.route("/api/v2/utility/warm-up", methods=["GET"])
    def warm_up():
        """Keep-alive endpoint for schedulers and load balancers."""
        return jsonify({"status": "warm"}), 200

    @app.route("/api/v2/links", methods=["POST"])
    def create_link():
        """Handle link creation requests.

        POST /api/v2/links - JSON body {"url": "..."}

        Returns:
            200: {"id": ..., "url": ...}
            400: Missing or invalid URL
            503: ID allocation exhausted its attempts (retryable)
            500: Internal server error
        """
        payload = request.get_json(silent=True) or {}
        url = payload.get("url") if isinstance(payload, dict) else None
        client_ip = request.headers.get("X-Forwarded-For") or request.remote_addr

        if not isinstance(url, str) or not url.strip():
            return jsonify({"error": "URL parameter is required"}), 400

        try:
            link_id, short_url = link_handler.create_link(url, client_ip)
        except LinkHandlerError as e:
            if "requirements" in str(e) or "required" in str(e):
                logger.info(f"Rejected URL from {client_ip}: {e}")
                return jsonify({"error": str(e)}), 400
            logger.error(f"Link handler error for {client_ip}: {e}")
            return jsonify({"error": "Failed to save link"}), 500
        except ExhaustedAttempts as e:
            logger.error(f"ID allocation exhausted for {client_ip}: {e}")
            return (
                jsonify(
                    {
                        "error": "Unable to allocate a short link, please try again",
                        "retryable": True,
                    }
                ),
                503,
            )
        except (CapacityComputationError, NoCoprimeGeneratorFound) as e:
            logger.error(f"ID allocation failed for {client_ip}: {e}")
            return jsonify({"error": "ID allocation failed", "retryable": False}), 500
        except Exception as e:
            logger.exception(f"Unexpected error for {client_ip}: {e}")
            return jsonify({"error": "Internal server error"}), 500

        return jsonify({"id": link_id, "url": short_url}), 200

    @app.route("/api/v2/report", methods=["POST"])
    def report_link():
        """Handle link report requests.

        POST /api/v2/report - JSON body
        {"shortId": "...", "reason": "...", "reporterEmail": "...", "url": "..."}

        Returns:
            200: {"id": report_id}
            400: Missing short ID or invalid reason
            404: Unknown short link
            500: Internal server error
        """
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            payload = {}
        short_id = payload.get("shortId")
        lytn_url = payload.get("url")
        client_ip = request.headers.get("X-Forwarded-For") or request.remote_addr

        if not isinstance(short_id, str) or not short_id:
            return jsonify({"error": "shortId is required"}), 400

        try:
            report_id = link_handler.report_link(
                short_id,
                payload.get("reason"),
                reporter_email=payload.get("reporterEmail"),
                client_ip=client_ip,
                lytn_url=lytn_url if isinstance(lytn_url, str) else None,
            )
        except LinkHandlerError as e:
            if str(e).startswith(("Invalid report reason", "Short ID is required")):
                logger.info(f"Rejected report from {client_ip}: {e}")
                return jsonify({"error": str(e)}), 400
            logger.error(f"Failed to save report for {short_id}: {e}")
            return jsonify({"error": "Failed to save report"}), 500

        if report_id is None:
            return jsonify({"error": "Not found"}), 404
        return jsonify({"id": report_id}), 200

    @app.route("/api/v2/links/<link_id>", methods=["GET"])
    def get_link(link_id: str):
        """Return the destination of a short link as JSON."""
        if not _is_valid_id(link_id):
            return jsonify({"error": "Not found"}), 404

        try:
            destination = link_handler.get_destination(link_id)
        except LinkHandlerError as e:
            logger.error(f"Lookup failed for {link_id}: {e}")
            return jsonify({"error": "Internal server error"}), 500

        if destination is None:
            return jsonify({"error": "Not found"}), 404
        return jsonify({"destination": destination}), 200

    @app.route("/<link_id>", methods=["GET"])
    def follow_link(link_id: str):
        """Redirect a short link to its destination.

        Returns:
            302: Redirect to destination
            404: Unknown or malformed link ID
            500: Internal server error
        """
        if not _is_valid_id(link_id):
            logger.info(f"Invalid link ID format: {link_id}")
            return Response(
                f"Not Found: Link {link_id} does not exist\n",
                status=404,
                mimetype="text/plain",
            )

        try:
            destination = link_handler.get_destination(link_id)
        except LinkHandlerError as e:
            logger.error(f"Lookup failed for {link_id}: {e}")
            return Response(
                "Internal Server Error: Failed to retrieve link\n",
                status=500,
                mimetype="text/plain",
            )

        if destination is None:
            logger.info(f"Link not found: {link_id}")
            return Response(
                f"Not Found: Link {link_id} does not exist\n",
                status=404,
                mimetype="text/plain",
            )

        logger.info(f"Redirecting {link_id} -> {destination}")
        return redirect(destination, code=302)

    return app


def run_server(config: Config, link_handler: LinkHandler) -> None:
    """Run the Flask HTTP server.

    Args:
        config: Configuration instance
        link_handler: Handler for link operations
    """
    app = create_app(config, link_handler)

    logger.info(f"Starting HTTP server on all interfaces, port {config.listen_port}")
    app.run(host="0.0.0.0", port=config.listen_port, debug=False)  # nosec B104
