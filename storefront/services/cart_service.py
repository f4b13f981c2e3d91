from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any
from sqlalchemy.orm import Session
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.repos.cart_repo import CartRepo
from storefront.services.product_client import ProductClient
from storefront.services.lock_service import LockService
from storefront.utils import settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CENTS = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


class CartService:
    """
    Use case'y koszyka dla aktualnego wlasciciela (user albo sesja goscia).
    commands (add, update, remove, clear) modyfikuja stan
    query (get) tylko odczyt
    """

    def __init__(
        self,
        db: Session,
        product_client: ProductClient,
        lock_service: LockService,
        tax_rate: float = settings.TAX_RATE,
        base_shipping_rate: float = settings.BASE_SHIPPING_RATE,
        weight_shipping_multiplier: float = settings.WEIGHT_SHIPPING_MULTIPLIER,
        max_quantity_per_item: int = settings.MAX_QUANTITY_PER_ITEM,
        reserve_stock_on_add: bool = settings.RESERVE_STOCK_ON_ADD,
        stock_reservation_minutes: int = settings.STOCK_RESERVATION_MINUTES,
    ):
        self.repo = CartRepo(db)
        self.product_client = product_client
        self.lock_service = lock_service
        self.tax_rate = Decimal(str(tax_rate))
        self.base_shipping_rate = Decimal(str(base_shipping_rate))
        self.weight_shipping_multiplier = Decimal(str(weight_shipping_multiplier))
        self.max_quantity_per_item = max_quantity_per_item
        self.reserve_stock_on_add = reserve_stock_on_add
        self.stock_reservation_minutes = stock_reservation_minutes

    #query - odczyt
    def get_cart(self, user_id: int | None, session_id: str | None) -> Dict[str, Any]:
        cart = self.repo.get_cart_for_owner(user_id, session_id)
        if not cart:
            return self._empty_view(user_id, session_id)
        return self._view(cart)

    def _empty_view(self, user_id, session_id) -> Dict[str, Any]:
        zero = Decimal("0.00")
        return {
            "cart_id": None,
            "user_id": user_id,
            "session_id": None if user_id is not None else session_id,
            "items": [],
            "item_count": 0,
            "subtotal": zero,
            "tax": zero,
            "shipping": zero,
            "total": zero,
            "updated_at": None,
        }

    def _view(self, cart: CartModel) -> Dict[str, Any]:
        items = self.repo.get_cart_items(cart.id)

        subtotal = sum((i.price * i.quantity for i in items), Decimal("0.00"))
        weight = sum((i.weight * i.quantity for i in items), Decimal("0"))
        tax = _money(subtotal * self.tax_rate)
        #pusty koszyk nie placi za wysylke
        shipping = (
            _money(self.base_shipping_rate + weight * self.weight_shipping_multiplier)
            if items else Decimal("0.00")
        )

        return {
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "session_id": cart.session_id,
            "items": [
                {
                    "product_id": i.product_id,
                    "quantity": i.quantity,
                    "price": i.price,
                    "subtotal": _money(i.price * i.quantity),
                }
                for i in items
            ],
            "item_count": sum(i.quantity for i in items),
            "subtotal": _money(subtotal),
            "tax": tax,
            "shipping": shipping,
            "total": _money(subtotal) + tax + shipping,
            "updated_at": cart.updated_at,
        }

    #commands
    def get_or_create_cart(self, user_id: int | None, session_id: str | None) -> CartModel:
        existing = self.repo.get_cart_for_owner(user_id, session_id)
        if existing:
            return existing

        if user_id is None and not session_id:
            raise ValueError("No cart owner: missing user and cart session")

        cart = self.repo.create_cart(
            CartModel(
                user_id=user_id,
                session_id=None if user_id is not None else session_id,
            )
        )
        owner = "guest session" if cart.is_guest else f"user {user_id}"
        logger.info(f"Created cart {cart.id} for {owner}")
        return cart

    def _check_quantity(self, quantity: int) -> None:
        if quantity > self.max_quantity_per_item:
            raise ValueError(f"Maximum quantity per item is {self.max_quantity_per_item}")

    def _reserve(self, product_id: int, cart_id: int, quantity: int) -> None:
        if self.reserve_stock_on_add:
            self.lock_service.reserve_stock(
                product_id=product_id,
                cart_id=cart_id,
                quantity=quantity,
                ttl=self.stock_reservation_minutes * 60,
            )

    def add_product(
        self,
        user_id: int | None,
        session_id: str | None,
        product_id: int,
        quantity: int,
    ) -> Dict[str, Any]:
        if quantity <= 0:
            raise ValueError("Quantity must be greater than 0")

        #najpierw produkt, zeby nie zostawic pustego koszyka
        pdata = self.product_client.fetch_product(product_id)
        if not pdata.get("is_active", True):
            raise ValueError("Product is not available")

        cart = self.get_or_create_cart(user_id, session_id)

        now = datetime.now(timezone.utc)
        try:
            existing_item = self.repo.get_cart_item(cart.id, product_id)

            if existing_item:
                new_quantity = existing_item.quantity + quantity
                self._check_quantity(new_quantity)
                logger.info(
                    f"Product {product_id} already in cart {cart.id}, quantity "
                    f"{existing_item.quantity} -> {new_quantity}"
                )
                existing_item.quantity = new_quantity
                existing_item.price = pdata["price"]  # update ceny
                existing_item.weight = pdata["weight"]
                existing_item.updated_at = now
            else:
                new_quantity = quantity
                self._check_quantity(new_quantity)
                logger.info(f"Adding product {product_id} to cart {cart.id}")
                self.repo.add_cart_item(
                    CartItemModel(
                        cart_id=cart.id,
                        product_id=product_id,
                        quantity=quantity,
                        price=pdata["price"],
                        weight=pdata["weight"],
                        updated_at=now,
                    )
                )

            self.repo.touch_cart(cart, now)
            self.repo.commit()
        except Exception as e:
            logger.error(f"Failed to add product {product_id} to cart {cart.id}: {e}")
            self.repo.rollback()
            raise

        self._reserve(product_id, cart.id, new_quantity)
        return self._view(cart)

    def update_quantity(
        self,
        user_id: int | None,
        session_id: str | None,
        product_id: int,
        quantity: int,
    ) -> Dict[str, Any]:
        if quantity < 0:
            raise ValueError("Quantity cannot be negative")

        cart = self.repo.get_cart_for_owner(user_id, session_id)
        if not cart:
            raise LookupError("Cart not found")

        item = self.repo.get_cart_item(cart.id, product_id)
        if not item:
            raise LookupError(f"Product {product_id} is not in the cart")

        if quantity == 0:
            return self.remove_product(user_id, session_id, product_id)

        self._check_quantity(quantity)

        now = datetime.now(timezone.utc)
        item.quantity = quantity
        item.updated_at = now
        self.repo.touch_cart(cart, now)
        self.repo.commit()

        logger.info(f"Product {product_id} quantity in cart {cart.id} set to {quantity}")
        self._reserve(product_id, cart.id, quantity)
        return self._view(cart)

    def remove_product(
        self,
        user_id: int | None,
        session_id: str | None,
        product_id: int,
    ) -> Dict[str, Any]:
        cart = self.repo.get_cart_for_owner(user_id, session_id)
        if not cart:
            raise LookupError("Cart not found")

        deleted = self.repo.delete_cart_item(cart.id, product_id)
        if not deleted:
            raise LookupError(f"Product {product_id} is not in the cart")

        self.repo.touch_cart(cart, datetime.now(timezone.utc))
        self.repo.commit()

        if self.reserve_stock_on_add:
            self.lock_service.release_stock(product_id, cart.id)

        logger.info(f"Product {product_id} removed from cart {cart.id}")
        return self._view(cart)

    def clear_cart(self, user_id: int | None, session_id: str | None) -> Dict[str, Any]:
        cart = self.repo.get_cart_for_owner(user_id, session_id)
        if not cart:
            return self._empty_view(user_id, session_id)

        items = self.repo.get_cart_items(cart.id)
        self.repo.delete_items_for_carts([cart.id])
        self.repo.touch_cart(cart, datetime.now(timezone.utc))
        self.repo.commit()

        if self.reserve_stock_on_add:
            for item in items:
                self.lock_service.release_stock(item.product_id, cart.id)

        logger.info(f"Cart {cart.id} cleared ({len(items)} lines)")
        return self._view(cart)
