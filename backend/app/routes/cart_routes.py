# backend/app/routes/cart_routes.py

from typing import Any, Dict

from fastapi import APIRouter, Depends

from app.db import get_conn
from app.errors import Conflict
from app.models.orders import CartItemIn, CartItemRef, CartQuantityUpdate
from app.security import get_current_user
from app.services.cart_service import load_cart, save_cart
from app.services.catalog_service import get_product

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("")
def get_cart(user: Dict[str, Any] = Depends(get_current_user), conn=Depends(get_conn)):
    return load_cart(conn, user["id"]).to_dict()


@router.post("/items")
def add_item(
    payload: CartItemIn,
    user: Dict[str, Any] = Depends(get_current_user),
    conn=Depends(get_conn),
):
    product = get_product(conn, payload.product_id)
    cart = load_cart(conn, user["id"])

    in_cart = sum(
        int(i["quantity"]) for i in cart.items if i["product_id"] == str(product["id"])
    )
    if not product.get("infinite_stock") and in_cart + payload.quantity > int(product.get("stock") or 0):
        raise Conflict(f"Only {product.get('stock') or 0} left of {product['title']}")

    cart.add_item(product, payload.size, payload.quantity)
    save_cart(conn, user["id"], cart)
    return cart.to_dict()


@router.patch("/items")
def update_item(
    payload: CartQuantityUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    conn=Depends(get_conn),
):
    cart = load_cart(conn, user["id"])
    cart.update_quantity(payload.product_id, payload.size, payload.quantity)
    save_cart(conn, user["id"], cart)
    return cart.to_dict()


@router.delete("/items")
def remove_item(
    payload: CartItemRef,
    user: Dict[str, Any] = Depends(get_current_user),
    conn=Depends(get_conn),
):
    cart = load_cart(conn, user["id"])
    cart.remove_item(payload.product_id, payload.size)
    save_cart(conn, user["id"], cart)
    return cart.to_dict()


@router.delete("")
def clear_cart(user: Dict[str, Any] = Depends(get_current_user), conn=Depends(get_conn)):
    cart = load_cart(conn, user["id"])
    cart.clear()
    save_cart(conn, user["id"], cart)
    return cart.to_dict()
