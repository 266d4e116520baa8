import re
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from typing import List

from order_api import schemas
from order_api.errors import PersistenceError
from order_api.store import OrderStore

router = APIRouter(
    prefix="/api/v1/orders",
    tags=["orders"],
)

def get_store(request: Request) -> OrderStore:
    # 애플리케이션이 소유한 스토어 인스턴스를 주입합니다.
    return request.app.state.store

ORDER_ID_PATTERN = re.compile(r"[+-]?[0-9]+")

def parse_order_id(order_id: str) -> int:
    # 부호와 ASCII 숫자만 허용하고 64-bit 범위를 벗어나면 거부합니다.
    if not ORDER_ID_PATTERN.fullmatch(order_id):
        raise HTTPException(status_code=400, detail="Invalid order ID")
    value = int(order_id)
    if not schemas.INT64_MIN <= value <= schemas.INT64_MAX:
        raise HTTPException(status_code=400, detail="Invalid order ID")
    return value

# ===============================
# Order Endpoints
# ===============================

@router.post("", response_model=schemas.Order, status_code=status.HTTP_201_CREATED)
def create_order(order: schemas.OrderCreate, store: OrderStore = Depends(get_store)):
    try:
        return store.create(order)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

@router.get("", response_model=List[schemas.Order])
def read_orders(store: OrderStore = Depends(get_store)):
    try:
        return store.get_all()
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

@router.get("/{order_id}", response_model=schemas.Order)
def read_order(order_id: str, store: OrderStore = Depends(get_store)):
    parsed_id = parse_order_id(order_id)
    try:
        db_order = store.get_by_id(parsed_id)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if db_order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return db_order

@router.put("/{order_id}", response_model=schemas.Order)
def update_order(order_id: str, order: schemas.OrderUpdate, store: OrderStore = Depends(get_store)):
    parsed_id = parse_order_id(order_id)
    try:
        return store.update(parsed_id, order)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(order_id: str, store: OrderStore = Depends(get_store)):
    parsed_id = parse_order_id(order_id)
    try:
        store.delete(parsed_id)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
