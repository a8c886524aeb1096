"""
Product models
"""
from typing import Optional, Any, Dict
from pydantic import BaseModel, Field


class Product(BaseModel):
    """Product as returned by a product provider"""

    model_config = {"extra": "allow", "populate_by_name": True}

    id: str
    name: str
    price: Optional[float] = None
    description: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    category: Optional[str] = None
    provider_name: Optional[str] = Field(default=None, alias="providerName")
    active: bool = True
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def formatted_price(self) -> Optional[str]:
        """Price formatted as R$ 0.00"""
        if self.price is None:
            return None
        return f"R$ {self.price:.2f}"
