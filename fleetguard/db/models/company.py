from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey
from sqlalchemy.orm import relationship

from fleetguard.db.base import Base


class Company(Base):
    """A tenant. Subsidiaries point at their parent; only one level is modelled."""
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    parent_company_id = Column(Integer, ForeignKey("companies.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    parent = relationship("Company", remote_side=[id], back_populates="subsidiaries")
    subsidiaries = relationship("Company", back_populates="parent")
    users = relationship("User", back_populates="company")
