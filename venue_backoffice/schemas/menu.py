# venue_backoffice/schemas/menu.py
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    """Schema for creating a menu category. Lower display_order shows first."""
    name: str = Field(min_length=1)
    description: Optional[str] = None
    display_order: int = Field(default=0, ge=0)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    display_order: Optional[int] = Field(default=None, ge=0)


class CategoryResponse(CategoryCreate):
    id: str
    venue_id: str
    created_at: Optional[datetime] = None


class ProductCreate(BaseModel):
    """Schema for creating a product."""
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: float = Field(ge=0)
    category_id: Optional[str] = None
    image_url: Optional[str] = None
    storage_path: Optional[str] = None
    is_available: bool = True


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    category_id: Optional[str] = None
    image_url: Optional[str] = None
    storage_path: Optional[str] = None
    is_available: Optional[bool] = None


class ProductResponse(ProductCreate):
    id: str
    venue_id: str
    created_at: Optional[datetime] = None
