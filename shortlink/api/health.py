from fastapi import APIRouter, Request

from shortlink.db.Connection import database

router = APIRouter(tags=["health"])


# simple liveness
@router.get("/health")
def health():
    return {"status": "healthy", "service": "url-shortener"}


# readiness: check DB + Redis connectivity
@router.get("/ready")
def readiness(request: Request):
    stores = request.app.state.stores
    details = {
        "db": "ok" if database.verify_database_connection(stores.engine) else "error",
        "redis": "ok" if database.verify_redis_connection(stores.redis_client) else "error",
    }
    ready = details["db"] == "ok" and details["redis"] == "ok"
    return {"ready": ready, "details": details}
