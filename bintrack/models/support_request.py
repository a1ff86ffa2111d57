# bintrack/models/support_request.py
"""Support tickets submitted through POST /api/support."""

from sqlalchemy import Column, Integer, String, DateTime, Text
from bintrack.database import Base


class SupportRequest(Base):
    __tablename__ = "support_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ca_number = Column(String(10), index=True)
    name = Column(String(200))
    subject = Column(Text)
    created_at = Column(DateTime, index=True)

    def __repr__(self):
        return f"<SupportRequest {self.id} ca={self.ca_number}>"
