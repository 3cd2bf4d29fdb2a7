from typing import List, Literal, Optional
from pydantic import BaseModel, EmailStr, Field, constr

Role = Literal["admin", "manager", "staff", "ecommerce"]
AlertType = Literal["low_stock", "daily_report"]


class UserUpdateRequest(BaseModel):
    username: Optional[constr(strip_whitespace=True, min_length=3, max_length=80)] = None
    role: Optional[Role] = None
    is_active: Optional[bool] = None
    password: Optional[constr(min_length=6)] = None


class RecipientRequest(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=120)
    email: EmailStr
    types: List[AlertType] = Field(default_factory=lambda: ["low_stock", "daily_report"])
    is_active: bool = True


class RecipientUpdateRequest(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=120)] = None
    email: Optional[EmailStr] = None
    types: Optional[List[AlertType]] = None
    is_active: Optional[bool] = None
