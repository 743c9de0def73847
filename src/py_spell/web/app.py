"""Flask application factory for the py-spell demo.

The ``create_app`` function creates a launch logger and returns a Flask
app with two endpoints:

- ``POST /api/cast`` — tokenize a command line, ``cast_output`` it, and
  return the exit status and both output streams as JSON.
- ``GET /api/log`` — return the launch log.
"""

from __future__ import annotations

from flask import Flask, Response, jsonify, request

from py_spell.logging import Logger
from py_spell.spell import Spell

_HTTP_BAD_REQUEST = 400
_HTTP_UNPROCESSABLE = 422
_LOG_LIMIT = 100


def create_app(logger: Logger | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        logger: Launch logger to record into; a fresh one if omitted.

    Returns:
        A configured Flask application ready to serve.

    """
    log = logger if logger is not None else Logger()

    app = Flask(__name__)

    @app.route("/api/cast", methods=["POST"])
    def cast() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Run a command line and return JSON output.

        Expects JSON body: ``{"command": "...", "cwd": "..."}`` where
        ``cwd`` is optional.

        Returns:
            JSON with ``status``, ``signal``, ``success``, ``stdout`` and
            ``stderr`` fields.

        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or "command" not in data:
            return jsonify({"error": "Missing 'command' field"}), _HTTP_BAD_REQUEST
        if not isinstance(data["command"], str) or not isinstance(data.get("cwd", ""), str):
            return jsonify({"error": "'command' and 'cwd' must be strings"}), _HTTP_BAD_REQUEST

        spell = Spell.from_string(data["command"], logger=log)
        if "cwd" in data:
            spell.current_dir(data["cwd"])

        output = spell.cast_output()
        if output is None:
            return jsonify({"error": f"Failed to execute {spell.program!r}"}), _HTTP_UNPROCESSABLE

        return jsonify(
            {
                "status": output.status.code,
                "signal": output.status.signal,
                "success": output.status.success,
                "stdout": output.collect_stdout(),
                "stderr": output.collect_stderr(),
            }
        )

    @app.route("/api/log")
    def launch_log() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the most recent launch log entries."""
        entries = log.entries[-_LOG_LIMIT:]
        return jsonify({"entries": [str(e) for e in entries]})

    return app


def main() -> None:
    """Run the demo development server.

    This is the ``py-spell-web`` console entry point.
    """
    app = create_app()
    app.run(debug=True, port=8080)
