# storefront/services/product_client.py
from decimal import Decimal

import requests

from storefront.utils.retry import http_retry
from storefront.utils.settings import PRODUCT_SERVICE_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class ProductClient:
    def __init__(self, base_url: str | None = None, timeout: int = 2):
        self.base_url = (base_url or PRODUCT_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def fetch_product(self, product_id: int) -> dict:
        url = f"{self.base_url}/products/{product_id}"
        logger.info(f"ProductClient GET {url}")

        resp = requests.get(url, timeout=self.timeout)
        if resp.status_code == 404:
            raise ValueError(f"Product {product_id} does not exist")
        resp.raise_for_status()
        data = resp.json()

        #cena i waga jako Decimal, waga opcjonalna
        return {
            "id": data.get("id", product_id),
            "price": Decimal(str(data["price"])),
            "weight": Decimal(str(data.get("weight") or 0)),
            "is_active": data.get("is_active", True),
        }
