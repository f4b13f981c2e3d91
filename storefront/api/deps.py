# storefront/api/deps.py
import redis
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from storefront.data.cache import redis_dependency
from storefront.data.database import get_db
from storefront.services.cart_service import CartService
from storefront.services.lock_service import LockService
from storefront.services.merge_service import CartMergeService
from storefront.services.product_client import ProductClient
from storefront.services.session_service import SessionService
from storefront.utils.settings import SESSION_COOKIE_NAME

USER_HEADER = "X-User-Id"


def parse_user_id(raw: str | None) -> int | None:
    """X-User-Id is set by the auth gateway; empty means anonymous."""
    if raw is None or not raw.strip():
        return None
    user_id = int(raw)
    if user_id <= 0:
        raise ValueError("User id must be positive")
    return user_id


def current_user_id(x_user_id: str | None = Header(default=None)) -> int | None:
    try:
        return parse_user_id(x_user_id)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {USER_HEADER} header")


def current_session_id(request: Request) -> str | None:
    #nowa sesja z middleware nie ma jeszcze cookie w requescie
    return request.cookies.get(SESSION_COOKIE_NAME) or getattr(request.state, "cart_session", None)


def get_product_client() -> ProductClient:
    return ProductClient()


def build_session_service(db: Session | None, client: redis.Redis) -> SessionService:
    return SessionService(db=db, client=client)


def build_merge_service(db: Session, client: redis.Redis) -> CartMergeService:
    return CartMergeService(
        db=db,
        lock_service=LockService(client),
        session_service=build_session_service(db, client),
    )


def get_cart_service(
    db: Session = Depends(get_db),
    client: redis.Redis = Depends(redis_dependency),
    product_client: ProductClient = Depends(get_product_client),
) -> CartService:
    return CartService(
        db=db,
        product_client=product_client,
        lock_service=LockService(client),
    )


def get_merge_service(
    db: Session = Depends(get_db),
    client: redis.Redis = Depends(redis_dependency),
) -> CartMergeService:
    return build_merge_service(db, client)
