"""
Product lookup service
Resolves product references used by product nodes through registered providers
"""
import logging
from typing import Optional, Any, Dict, List
import httpx

from ..core.config import settings
from ..core.exceptions import ProductNotFoundError
from ..models.product import Product

logger = logging.getLogger(__name__)


class ProductProvider:
    """Base class for product sources"""

    provider_name: str = "base"

    async def get_product_by_id(self, product_id: str) -> Optional[Product]:
        """Return the product or None when the provider does not know it"""
        raise NotImplementedError


class HttpProductProvider(ProductProvider):
    """Product provider backed by a REST catalog (GET /products/{id})"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        provider_name: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.PRODUCT_API_URL or "").rstrip("/")
        self.api_key = api_key if api_key is not None else settings.PRODUCT_API_KEY
        self.provider_name = provider_name or settings.PRODUCT_PROVIDER_NAME
        self._transport = transport

    def _get_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json"
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def get_product_by_id(self, product_id: str) -> Optional[Product]:
        if not self.base_url:
            logger.warning(f"Provider {self.provider_name} has no API URL configured")
            return None

        url = f"{self.base_url}/products/{product_id}"

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(url, headers=self._get_headers(), timeout=30)

                if response.status_code == 200:
                    data = response.json()
                    # Some catalogs wrap the product in {"data": {...}}
                    if isinstance(data, dict) and isinstance(data.get("data"), dict):
                        data = data["data"]
                    return self._map_product(data)
                else:
                    logger.error(
                        f"Product API error for {product_id}: "
                        f"{response.status_code} - {response.text}"
                    )
                    return None

        except Exception as e:
            logger.error(f"Error fetching product {product_id} from {self.provider_name}: {e}")
            return None

    def _map_product(self, data: Dict[str, Any]) -> Product:
        price = data.get("price")
        return Product(
            id=f"{self.provider_name}-{data.get('id')}",
            name=data.get("name") or "",
            description=data.get("description") or None,
            price=float(price) if price not in (None, "") else None,
            image_url=data.get("image_url") or data.get("imageUrl"),
            category=data.get("category"),
            provider_name=self.provider_name,
            active=data.get("active", True),
            metadata=data
        )


class ProductService:
    """Registry of product providers"""

    def __init__(self, providers: Optional[List[ProductProvider]] = None):
        self.providers: Dict[str, ProductProvider] = {}
        for provider in providers or []:
            self.register_provider(provider)

    def register_provider(self, provider: ProductProvider) -> None:
        self.providers[provider.provider_name] = provider
        logger.info(f"Registered product provider: {provider.provider_name}")

    async def get_product_by_id(self, product_id: str, provider_name: Optional[str] = None) -> Product:
        """
        Resolve a product reference.

        An id shaped "provider-productid" is routed to that provider; other ids
        go to the given provider or to the first registered one.

        Raises:
            ProductNotFoundError: If no provider returns the product
        """
        if not product_id:
            raise ProductNotFoundError(product_id, "empty product id")

        prefix, _, rest = product_id.partition("-")
        if rest and prefix in self.providers:
            provider = self.providers[prefix]
            lookup_id = rest
        else:
            provider = self.providers.get(provider_name) if provider_name else None
            if provider is None and self.providers:
                provider = next(iter(self.providers.values()))
            lookup_id = product_id

        if provider is None:
            raise ProductNotFoundError(product_id, "no product provider registered")

        try:
            product = await provider.get_product_by_id(lookup_id)
        except Exception as e:
            logger.exception(f"Error getting product by ID {product_id}: {e}")
            raise ProductNotFoundError(product_id, str(e)) from e

        if product is None:
            raise ProductNotFoundError(product_id)

        return product


def create_product_service() -> ProductService:
    """Create the product service with the configured HTTP provider"""
    providers: List[ProductProvider] = []
    if settings.PRODUCT_API_URL:
        providers.append(HttpProductProvider())
    return ProductService(providers)
