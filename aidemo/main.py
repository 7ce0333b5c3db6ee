"""Main Quart application for the AI demo assistant."""
from typing import Optional

import structlog
from quart import Quart, jsonify

from aidemo import config
from aidemo.api import blueprints
from aidemo.api.common import EXTENSION_KEY, Services
from aidemo.logging_setup import configure_logging

configure_logging()

logger = structlog.get_logger()


def create_app(services: Optional[Services] = None) -> Quart:
    """Build the application.

    Args:
        services: Service container used by the blueprints
            (default: the shared Ollama-backed services)
    """
    app = Quart(__name__)
    app.extensions[EXTENSION_KEY] = services or Services()

    for blueprint in blueprints:
        app.register_blueprint(blueprint)

    @app.route("/health/ready")
    async def health_ready():
        """Readiness probe - check if app can serve requests.

        Checks:
        - Ollama service is reachable
        - Required chat and embedding models are available
        """
        llm = app.extensions[EXTENSION_KEY].llm
        checks = {
            "status": "healthy",
            "ollama": False,
            "models": False,
        }

        try:
            models = await llm.list_models()
            checks["ollama"] = True

            missing = [m for m in (llm.chat_model, llm.embedding_model) if m not in models]
            if missing:
                checks["status"] = "unhealthy"
                checks["error"] = f"Missing models: {', '.join(missing)}"
            else:
                checks["models"] = True

            status_code = 200 if checks["status"] == "healthy" else 503
            return jsonify(checks), status_code

        except Exception as e:
            logger.error("health_check_failed", error=str(e))
            checks["status"] = "unhealthy"
            checks["error"] = str(e)
            return jsonify(checks), 503

    @app.route("/health/live")
    async def health_live():
        """Liveness probe - check if app is running."""
        return jsonify({"status": "alive"}), 200

    @app.errorhandler(404)
    async def not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    async def internal_error(error):
        logger.error("internal_server_error", error=str(error))
        return jsonify({"error": "Internal server error"}), 500

    @app.after_serving
    async def close_clients():
        await app.extensions[EXTENSION_KEY].llm.aclose()

    logger.info(
        "app_created",
        chat_model=config.CHAT_MODEL,
        embedding_model=config.EMBEDDING_MODEL,
        knowledge_base_dir=str(config.KNOWLEDGE_BASE_DIR),
    )
    return app


app = create_app()


if __name__ == "__main__":
    # For development - use hypercorn in production
    app.run(host="0.0.0.0", port=5000, debug=True)
