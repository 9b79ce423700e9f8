from datetime import datetime, timezone
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire and in the store."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StoredModel(CamelModel):
    """A stored document as returned to clients.

    ``_id`` repeats ``id`` for clients that read the store's own key.
    """

    id: str

    @computed_field(alias="_id")
    @property
    def document_id(self) -> str:
        return self.id


# Collection: wigs
class ProductIn(CamelModel):
    name: str = Field(..., min_length=1, description="Wig name")
    description: Optional[str] = Field(None, description="Wig description")
    price: float = Field(..., ge=0, description="Price in dollars")
    category: Optional[str] = Field(None, description="Wig category")
    in_stock: bool = Field(True, description="Whether the wig is in stock")
    image_url: Optional[str] = Field(None, description="Served path of the uploaded image")


class Product(ProductIn):
    created_at: datetime = Field(default_factory=_now)


class ProductOut(ProductIn, StoredModel):
    created_at: Optional[str] = None


# Collection: cartitems
class CartItemIn(CamelModel):
    product_id: str = Field(..., validation_alias=AliasChoices("productId", "wigId", "product_id"))
    name: Optional[str] = None
    price: Optional[float] = None
    image_url: Optional[str] = None


class CartItemOut(StoredModel):
    session_id: str
    product_id: str
    name: Optional[str] = None
    price: Optional[float] = None
    image_url: Optional[str] = None
    quantity: int = 1
    added_at: Optional[str] = None

    @computed_field(alias="wigId")
    @property
    def wig_id(self) -> str:
        return self.product_id


class CartOut(CamelModel):
    items: List[CartItemOut]
    total: float


class QuantityUpdate(CamelModel):
    quantity: int


# Collection: orders
class OrderItem(CamelModel):
    """Line snapshot copied verbatim from the checkout request."""

    product_id: Optional[str] = Field(None, validation_alias=AliasChoices("productId", "wigId", "product_id"))
    name: Optional[str] = None
    price: Optional[float] = None
    quantity: Optional[int] = None


class CheckoutIn(CamelModel):
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    items: List[OrderItem] = Field(default_factory=list)
    total_amount: Optional[float] = None
    session_id: Optional[str] = None


class Order(CamelModel):
    order_number: str
    customer_name: str
    customer_email: str
    customer_phone: str
    items: List[OrderItem]
    total_amount: float
    status: str = "completed"
    created_at: datetime = Field(default_factory=_now)


class OrderOut(StoredModel):
    order_number: str
    customer_name: str
    customer_email: str
    customer_phone: str
    items: List[OrderItem]
    total_amount: float
    status: str
    created_at: Optional[str] = None


class CheckoutOut(CamelModel):
    message: str
    order: OrderOut


class Message(CamelModel):
    message: str
