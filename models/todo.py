from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class Todo(BaseModel, Base):
    __tablename__ = "todos"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    value = Column(String(1024), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)

    user = relationship("User", back_populates="todos")
