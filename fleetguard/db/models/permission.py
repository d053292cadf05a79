from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from fleetguard.db.base import Base


class Permission(Base):
    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint("name", "guard_name", name="uq_permissions_name_guard_name"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    guard_name = Column(String(50), nullable=False, default="web")
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    roles = relationship(
        "Role",
        secondary="role_has_permissions",
        back_populates="permissions",
    )
