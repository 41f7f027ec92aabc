# venue_backoffice/routes/menu.py
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from venue_backoffice.schemas.menu import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
)
from venue_backoffice.utils.auth import get_database, get_manager_user

router = APIRouter(prefix="/manager", tags=["menu"])


def _owned(row: Optional[dict], venue_id: str, label: str) -> dict:
    # Rows from another venue are reported exactly like missing ones
    if row is None or row.get("venue_id") != venue_id:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return row


def _check_category(db, category_id: Optional[str], venue_id: str) -> None:
    if category_id is not None:
        _owned(db.get_category(category_id), venue_id, "Category")


@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(current_profile=Depends(get_manager_user), db=Depends(get_database)):
    return db.get_categories(current_profile.venue_id)


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(category: CategoryCreate,
                          current_profile=Depends(get_manager_user), db=Depends(get_database)):
    return db.create_category(current_profile.venue_id, category.model_dump())


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(category_id: str, category: CategoryUpdate,
                          current_profile=Depends(get_manager_user), db=Depends(get_database)):
    _owned(db.get_category(category_id), current_profile.venue_id, "Category")
    changes = category.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    return db.update_category(category_id, changes)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(category_id: str,
                          current_profile=Depends(get_manager_user), db=Depends(get_database)):
    """Delete a category; its products stay on the menu without a category."""
    _owned(db.get_category(category_id), current_profile.venue_id, "Category")
    db.delete_category(category_id)


@router.get("/products", response_model=List[ProductResponse])
async def list_products(category_id: Optional[str] = None,
                        current_profile=Depends(get_manager_user), db=Depends(get_database)):
    if category_id:
        _check_category(db, category_id, current_profile.venue_id)
        return db.get_products_by_category(category_id)
    return db.get_products(current_profile.venue_id)


@router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(product: ProductCreate,
                         current_profile=Depends(get_manager_user), db=Depends(get_database)):
    _check_category(db, product.category_id, current_profile.venue_id)
    return db.create_product(current_profile.venue_id, product.model_dump())


@router.patch("/products/{product_id}", response_model=ProductResponse)
async def update_product(product_id: str, product: ProductUpdate,
                         current_profile=Depends(get_manager_user), db=Depends(get_database)):
    _owned(db.get_product(product_id), current_profile.venue_id, "Product")
    changes = product.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    _check_category(db, changes.get("category_id"), current_profile.venue_id)
    return db.update_product(product_id, changes)


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(product_id: str,
                         current_profile=Depends(get_manager_user), db=Depends(get_database)):
    _owned(db.get_product(product_id), current_profile.venue_id, "Product")
    db.delete_product(product_id)


@router.post("/products/image", status_code=status.HTTP_201_CREATED)
async def upload_product_image(
    file: UploadFile = File(...),
    product_name: str = Form("product"),
    current_profile=Depends(get_manager_user),
    db=Depends(get_database),
):
    """Store an image for a product; returns the storage path and its public URL."""
    venue = db.get_venue(current_profile.venue_id)
    if venue is None:
        raise HTTPException(status_code=404, detail="Venue not found")
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Empty file")
    return db.upload_product_image(venue["name"], product_name, file.filename or "", data, file.content_type)
