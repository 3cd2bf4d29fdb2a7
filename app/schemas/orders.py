from typing import List, Optional
from pydantic import BaseModel, Field, constr

from models.item import MAX_QUANTITY


class OrderLine(BaseModel):
    product_id: int
    quantity: int = Field(ge=1, le=MAX_QUANTITY)


class CustomerInfo(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=120)
    contact: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class PlaceOrderRequest(BaseModel):
    items: List[OrderLine] = Field(min_length=1)
    customer_info: CustomerInfo
    payment_method: Optional[str] = None


class OrderUpdateRequest(BaseModel):
    order_status: Optional[str] = None
    tracking_number: Optional[str] = None
    notes: Optional[str] = None
