from flask import Blueprint, current_app

API_VERSION = "1.0.0"

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API is up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            version:
              type: string
              example: 1.0.0
    """
    return {"status": "ok", "version": API_VERSION}, 200


@bp.get("/health/db")
async def health_db():
    """
    Database readiness
    ---
    tags:
      - Health
    responses:
      200:
        description: Database reachable
      503:
        description: Database unavailable
    """
    await current_app.extensions["bookstore"].storage.ping()
    return {"status": "ok", "database": "ok"}, 200
