from typing import List, Optional
from pydantic import BaseModel, Field, constr


class SupplierRequest(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=120)
    contact: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    products: List[str] = Field(default_factory=list)


class SupplierUpdateRequest(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=120)] = None
    contact: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    products: Optional[List[str]] = None
