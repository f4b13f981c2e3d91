# storefront/middleware/cart_session.py
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.api.deps import USER_HEADER, build_merge_service, build_session_service, parse_user_id
from storefront.data.cache import get_redis
from storefront.data.database import SessionLocal
from storefront.utils.settings import SESSION_COOKIE_MAX_AGE, SESSION_COOKIE_NAME
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartSessionMiddleware(BaseHTTPMiddleware):
    """
    Per-request guest session handling, in this order:

    1. anonymous, no cookie  -> issue a new cart_session cookie (24h)
    2. user + cookie         -> merge the guest cart, then expire the cookie
    3. anything else         -> extend the session

    DB and Redis work runs in the threadpool; failures propagate to the
    framework's error handling.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            user_id = parse_user_id(request.headers.get(USER_HEADER))
        except ValueError:
            return JSONResponse({"detail": f"Invalid {USER_HEADER} header"}, status_code=400)

        session_id = request.cookies.get(SESSION_COOKIE_NAME)
        session_factory = getattr(request.app.state, "session_factory", SessionLocal)
        client = getattr(request.app.state, "redis", None)
        if client is None:
            client = get_redis()

        if user_id is None and not session_id:
            session_id = await run_in_threadpool(self._start_session, client)
            request.state.cart_session = session_id

            response = await call_next(request)
            response.set_cookie(
                SESSION_COOKIE_NAME,
                session_id,
                max_age=SESSION_COOKIE_MAX_AGE,
                httponly=True,
                samesite="lax",
            )
            return response

        if user_id is not None and session_id:
            request.state.cart_merge = await run_in_threadpool(
                self._merge, session_factory, client, user_id, session_id
            )

            response = await call_next(request)
            response.delete_cookie(SESSION_COOKIE_NAME)
            return response

        request.state.cart_session = session_id
        await run_in_threadpool(self._extend, session_factory, client, user_id, session_id)
        return await call_next(request)

    @staticmethod
    def _start_session(client) -> str:
        service = build_session_service(None, client)
        session_id = service.generate_session_id()
        service.start_session(session_id)
        return session_id

    @staticmethod
    def _merge(session_factory, client, user_id: int, session_id: str):
        db = session_factory()
        try:
            result = build_merge_service(db, client).merge_guest_cart(user_id, session_id)
            logger.info(f"Login merge for user {user_id}: {result.outcome}")
            return result
        finally:
            db.close()

    @staticmethod
    def _extend(session_factory, client, user_id, session_id) -> bool:
        db = session_factory()
        try:
            return build_session_service(db, client).extend_session(user_id, session_id)
        finally:
            db.close()
