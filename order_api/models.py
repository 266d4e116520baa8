from sqlalchemy import Column, String, Integer, DateTime

from order_api.database import Base

class Order(Base):
    __tablename__ = "orders"
    # 삭제된 id 가 재사용되지 않도록 AUTOINCREMENT 를 사용합니다.
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    product = Column(String)
    count = Column(Integer)
    status = Column(String)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)
