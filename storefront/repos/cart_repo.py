# storefront/repos/cart_repo.py
from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel


class CartRepo:
    """
    Dostep do tabel carts / cart_items.
    Repo nie commituje (poza create_cart) - transakcja nalezy do serwisu.
    """

    def __init__(self, db: Session):
        self.db = db

    # carts
    def get_guest_cart(self, session_id: str) -> CartModel | None:
        return self.db.execute(
            select(CartModel)
            .where(CartModel.session_id == session_id, CartModel.user_id.is_(None))
            .order_by(CartModel.id)
        ).scalars().first()

    def get_user_cart(self, user_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.user_id == user_id).order_by(CartModel.id)
        ).scalars().first()

    def get_cart_for_owner(self, user_id: int | None, session_id: str | None) -> CartModel | None:
        if user_id is not None:
            return self.get_user_cart(user_id)
        if session_id:
            return self.get_guest_cart(session_id)
        return None

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.commit()
        self.db.refresh(cart)
        return cart

    def promote_cart(self, cart: CartModel, user_id: int, now: datetime) -> None:
        cart.user_id = user_id
        cart.session_id = None
        cart.updated_at = now
        self.db.flush()

    def touch_cart(self, cart: CartModel, now: datetime) -> None:
        cart.updated_at = now
        self.db.flush()

    def delete_cart(self, cart_id: int) -> int:
        return (
            self.db.query(CartModel)
            .filter(CartModel.id == cart_id)
            .delete(synchronize_session=False)
        )

    # items
    def get_cart_items(self, cart_id: int) -> List[CartItemModel]:
        return self.db.execute(
            select(CartItemModel)
            .where(CartItemModel.cart_id == cart_id)
            .order_by(CartItemModel.id)
        ).scalars().all()

    def get_cart_item(self, cart_id: int, product_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def move_item(self, item: CartItemModel, cart_id: int, now: datetime) -> None:
        item.cart_id = cart_id
        item.updated_at = now
        self.db.flush()

    def delete_cart_item(self, cart_id: int, product_id: int) -> int:
        return (
            self.db.query(CartItemModel)
            .filter(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
            )
            .delete(synchronize_session=False)
        )

    def delete_items_for_carts(self, cart_ids: List[int]) -> int:
        if not cart_ids:
            return 0
        return (
            self.db.query(CartItemModel)
            .filter(CartItemModel.cart_id.in_(cart_ids))
            .delete(synchronize_session=False)
        )

    # sweep
    def expired_guest_cart_ids(self, cutoff: datetime) -> List[int]:
        rows = self.db.execute(
            select(CartModel.id).where(
                CartModel.user_id.is_(None),
                CartModel.updated_at < cutoff,
            )
        ).scalars().all()
        return list(rows)

    def delete_carts(self, cart_ids: List[int]) -> int:
        if not cart_ids:
            return 0
        return (
            self.db.query(CartModel)
            .filter(CartModel.id.in_(cart_ids))
            .delete(synchronize_session=False)
        )

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
