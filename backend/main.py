from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from api.v1 import auth
from api.dependencies import get_auth_service
from api.errors import register_exception_handlers
from core.config import settings
from db.base import initialize_database
from db.mongodb import init_mongo_indexes, close_mongo_client
from db import session as db_session
from services.auth_service import AuthService
from utils.logging_config import configure_logging, RequestContextMiddleware

logger = configure_logging(settings.LOG_LEVEL, settings.LOG_DIR, settings.LOG_TTL_DAYS)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG
)

register_exception_handlers(app)

# Tag log records with method/path (and the user id once authenticated)
app.add_middleware(RequestContextMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, tags=["Authentication"])

@app.on_event("startup")
async def startup_db_client():
    """Create SQL tables or ensure Mongo indexes, whichever store is active."""
    if settings.USE_MONGO:
        await init_mongo_indexes()
        logger.info("Mongo indexes ensured")
    else:
        await initialize_database(db_session.engine)
        logger.info("SQL database initialized")
    logger.info("Application startup complete")

@app.on_event("shutdown")
async def shutdown_db_client():
    if settings.USE_MONGO:
        close_mongo_client()
        logger.info("Closed Mongo client")
    elif db_session.engine is not None:
        await db_session.engine.dispose()
        logger.info("Disposed SQL engine")
    logger.info("Application shutdown complete")

@app.get("/")
async def root():
    return {"message": settings.APP_NAME, "version": settings.VERSION}

@app.get("/health")
async def health_check(service: AuthService = Depends(get_auth_service)):
    database = "mongo" if settings.USE_MONGO else "sql"
    try:
        await service.store.ping()
    except Exception as e:
        logger.warning(f"Health {database} check failed: {e}")
        return {"status": "degraded", "database": f"{database}_unavailable"}
    return {"status": "healthy", "database": f"{database}_connected"}
