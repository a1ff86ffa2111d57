# bintrack/models/consumer.py
"""
Consumer accounts table.
Created by POST /api/register, looked up by name on POST /api/login.
"""

from sqlalchemy import Column, Integer, String, DateTime
from bintrack.database import Base


class Consumer(Base):
    __tablename__ = "consumers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False, index=True)
    address = Column(String(500))
    contact_number = Column(String(50))
    password_hash = Column(String(100), nullable=False)   # bcrypt
    ca_number = Column(String(10), unique=True, nullable=False, index=True)
    created_at = Column(DateTime)

    def __repr__(self):
        return f"<Consumer {self.id} name={self.name} ca={self.ca_number}>"
