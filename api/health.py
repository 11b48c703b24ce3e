from flask import Blueprint

from models import storage
from utils.exceptions import StoreUnavailable

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    """
    Health check, including a round trip to the credential store
    ---
    tags:
      - Health
    responses:
      200:
        description: API and store are up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            store:
              type: string
              example: ok
            version:
              type: string
              example: 1.0.0
      503:
        description: Credential store unreachable
    """
    try:
        storage.ping()
    except StoreUnavailable:
        return {"status": "degraded", "store": "unavailable", "version": "1.0.0"}, 503
    return {"status": "ok", "store": "ok", "version": "1.0.0"}, 200
