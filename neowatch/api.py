"""FastAPI application exposing the administrative alert trigger."""

import logging
from typing import Any, Optional

from fastapi import BackgroundTasks, FastAPI, status

from .alerting import AlertOrchestrator
from .database import NotificationStore

logger = logging.getLogger(__name__)


def _run_alerting(orchestrator: AlertOrchestrator) -> None:
    try:
        result = orchestrator.run()
    except Exception as e:
        logger.exception(f"Alerting run crashed: {e}")
        return
    logger.info(f"Alerting run result: {result.to_dict()}")


def create_api_app(
    orchestrator: AlertOrchestrator, store: Optional[NotificationStore] = None
) -> FastAPI:
    """Create a FastAPI app with the alert trigger and health endpoints."""
    app = FastAPI(title="NeoWatch API", version="1.0.0")

    @app.post(
        "/api/v1/asteroid-alerting/alert", status_code=status.HTTP_202_ACCEPTED
    )
    def alert(background_tasks: BackgroundTasks) -> dict:
        """Start an alerting run and return without waiting for it."""
        logger.info("Alerting service called")
        background_tasks.add_task(_run_alerting, orchestrator)
        return {"status": "accepted"}

    @app.get("/health")
    def health() -> dict:
        """Basic health endpoint with database check."""
        payload: dict[str, Any] = {"service": "neowatch-api", "status": "ok"}
        if store is not None:
            db_status = store.health_check()
            payload["database"] = db_status
            if db_status.get("database") != "ok":
                payload["status"] = "degraded"
        return payload

    return app
