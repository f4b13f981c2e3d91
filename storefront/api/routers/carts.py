#storefront/api/routers/carts.py
import requests
from fastapi import APIRouter, Depends, HTTPException

from storefront.api.deps import current_session_id, current_user_id, get_cart_service
from storefront.domain.schemas import CartOut, ItemIn, QuantityIn
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def _run(fn, *args):
    try:
        return fn(*args)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except requests.RequestException as e:
        raise HTTPException(status_code=502, detail=f"Product service unavailable: {e}")


@router.get("", response_model=CartOut)
def get_cart(
    user_id: int | None = Depends(current_user_id),
    session_id: str | None = Depends(current_session_id),
    svc: CartService = Depends(get_cart_service),
):
    return svc.get_cart(user_id, session_id)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: ItemIn,
    user_id: int | None = Depends(current_user_id),
    session_id: str | None = Depends(current_session_id),
    svc: CartService = Depends(get_cart_service),
):
    return _run(svc.add_product, user_id, session_id, payload.product_id, payload.quantity)


@router.patch("/items/{product_id}", response_model=CartOut)
def update_item(
    product_id: int,
    payload: QuantityIn,
    user_id: int | None = Depends(current_user_id),
    session_id: str | None = Depends(current_session_id),
    svc: CartService = Depends(get_cart_service),
):
    return _run(svc.update_quantity, user_id, session_id, product_id, payload.quantity)


@router.delete("/items/{product_id}", response_model=CartOut)
def remove_item(
    product_id: int,
    user_id: int | None = Depends(current_user_id),
    session_id: str | None = Depends(current_session_id),
    svc: CartService = Depends(get_cart_service),
):
    return _run(svc.remove_product, user_id, session_id, product_id)


@router.delete("", response_model=CartOut)
def clear_cart(
    user_id: int | None = Depends(current_user_id),
    session_id: str | None = Depends(current_session_id),
    svc: CartService = Depends(get_cart_service),
):
    return _run(svc.clear_cart, user_id, session_id)
