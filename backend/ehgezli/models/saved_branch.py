"""
Customer favourites: a user-to-branch relation.
"""

from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from ehgezli.db.base import Base, TimestampMixin


class SavedBranch(Base, TimestampMixin):
    __tablename__ = "saved_branches"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    branch_id = Column(Integer, ForeignKey("restaurant_branches.id"), nullable=False, index=True)

    user = relationship("User", back_populates="saved_branches")
    branch = relationship("RestaurantBranch", back_populates="saved_by")

    __table_args__ = (
        UniqueConstraint("user_id", "branch_id", name="uq_saved_branch_user_branch"),
    )
