from pydantic import BaseModel, conint
from typing import Optional
from datetime import datetime

# SQLite INTEGER 범위 (64-bit)
INT64_MIN = -2**63
INT64_MAX = 2**63 - 1

Int64 = conint(ge=INT64_MIN, le=INT64_MAX)

# ===============================
# Order Schemas
# ===============================

class OrderBase(BaseModel):
    # 누락된 필드는 빈 JSON 객체를 디코딩한 것처럼 기본값으로 채웁니다.
    product: str = ""
    count: Int64 = 0
    status: str = ""

class OrderCreate(OrderBase):
    # id, created_at, updated_at 은 서버에서 할당하므로 요청 본문의 값은 무시합니다.
    class Config:
        extra = "ignore"

class OrderUpdate(OrderBase):
    # 본문의 id 는 무시하고 경로의 id 를 사용합니다.
    class Config:
        extra = "ignore"

class Order(OrderBase):
    id: int
    # None only when an update targeted an id with no row behind it
    created_at: Optional[datetime] = None
    updated_at: datetime

    class Config:
        from_attributes = True
