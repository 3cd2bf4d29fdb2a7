from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, constr, field_validator

from models.item import MAX_QUANTITY

Visibility = Literal["public", "limited", "internal"]


def _reject_null(value):
    # omitted fields are left alone; an explicit null would hit a NOT NULL column
    if value is None:
        raise ValueError("may not be null")
    return value


class ItemCreateRequest(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=120)
    category: constr(strip_whitespace=True, min_length=1, max_length=80)
    quantity: int = Field(ge=0, le=MAX_QUANTITY)
    reorder_level: int = Field(ge=0, le=MAX_QUANTITY)
    price: float = Field(ge=0, allow_inf_nan=False)
    supplier_id: Optional[int] = None
    sku: Optional[constr(strip_whitespace=True, max_length=64)] = None
    barcode: Optional[str] = None
    unit: Optional[str] = None
    description: Optional[str] = ""
    specifications: Optional[str] = None
    notes: Optional[str] = None
    expiry_date: Optional[datetime] = None
    images: List[str] = Field(default_factory=list, max_length=10)
    tags: List[str] = Field(default_factory=list)
    is_ecommerce_enabled: bool = True
    ecommerce_visibility: Visibility = "public"
    ecommerce_tags: List[str] = Field(default_factory=list, max_length=20)


class ItemUpdateRequest(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=120)] = None
    category: Optional[constr(strip_whitespace=True, min_length=1, max_length=80)] = None
    quantity: Optional[int] = Field(default=None, ge=0, le=MAX_QUANTITY)
    reorder_level: Optional[int] = Field(default=None, ge=0, le=MAX_QUANTITY)
    price: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    supplier_id: Optional[int] = None
    sku: Optional[constr(strip_whitespace=True, max_length=64)] = None
    barcode: Optional[str] = None
    unit: Optional[str] = None
    description: Optional[str] = None
    specifications: Optional[str] = None
    notes: Optional[str] = None
    expiry_date: Optional[datetime] = None
    images: Optional[List[str]] = Field(default=None, max_length=10)
    tags: Optional[List[str]] = None
    is_ecommerce_enabled: Optional[bool] = None
    ecommerce_visibility: Optional[Visibility] = None
    ecommerce_tags: Optional[List[str]] = Field(default=None, max_length=20)

    @field_validator(
        "name", "category", "quantity", "reorder_level", "price",
        "is_ecommerce_enabled", "ecommerce_visibility",
    )
    @classmethod
    def not_null(cls, value):
        return _reject_null(value)


class CatalogUpdateRequest(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=120)] = None
    price: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    description: Optional[str] = None
    specifications: Optional[str] = None
    images: Optional[List[str]] = Field(default=None, max_length=10)
    ecommerce_tags: Optional[List[str]] = Field(default=None, max_length=20)
    is_ecommerce_enabled: Optional[bool] = None
    ecommerce_visibility: Optional[Visibility] = None

    @field_validator("name", "price", "is_ecommerce_enabled", "ecommerce_visibility")
    @classmethod
    def not_null(cls, value):
        return _reject_null(value)


class VisibilityRequest(BaseModel):
    ecommerce_visibility: Visibility
    is_ecommerce_enabled: Optional[bool] = None
