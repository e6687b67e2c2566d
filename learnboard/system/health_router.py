from datetime import datetime

from fastapi import APIRouter, Depends
from pymongo.errors import PyMongoError

from learnboard.core.config import Config
from learnboard.core.dependencies import get_config, get_connection_manager
from learnboard.core.errors import StoreConnectionError
from learnboard.db.connection import ConnectionManager

router = APIRouter(tags=["System"])


@router.get("/health")
async def health(connections: ConnectionManager = Depends(get_connection_manager)):
    """
    Liveness plus a MongoDB ping. Never fails; a broken database shows up
    as "down" in the body.
    """
    record = {
        "status": "ok",
        "timestamp": datetime.utcnow(),
        "database": "DOWN",
        "latency_ms": None,
    }

    try:
        start = datetime.utcnow()
        database = await connections.get_connection()
        await database.command("ping")
        record["database"] = "UP"
        record["latency_ms"] = (datetime.utcnow() - start).total_seconds() * 1000
    except (StoreConnectionError, PyMongoError):
        record["database"] = "DOWN"

    return record


@router.get("/version")
def version(config: Config = Depends(get_config)):
    return {
        "name": config.APP_NAME,
        "version": config.APP_VERSION,
        "env": config.APP_ENV,
        "status": "stable",
    }
