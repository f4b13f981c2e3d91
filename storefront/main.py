# storefront/main.py
from fastapi import FastAPI
import uvicorn

from storefront.api.routers import carts, health, users
from storefront.data.database import SessionLocal, init_db
from storefront.middleware.cart_session import CartSessionMiddleware
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def create_app(session_factory=None, redis_client=None) -> FastAPI:
    app = FastAPI(
        title="Storefront Cart Service",
        version="1.0.0",
    )

    # kolaboranci dla middleware i dependency (get_db, redis_dependency)
    app.state.session_factory = session_factory or SessionLocal
    app.state.redis = redis_client

    app.add_middleware(CartSessionMiddleware)

    # Include routers
    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(carts.router)

    return app


def run():
    try:
        init_db()
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
