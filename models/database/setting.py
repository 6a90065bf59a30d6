"""
FileKeep Server - Setting Database Model

Setting model for runtime server tunables stored as key-value pairs.
"""

from sqlalchemy import Column, String

from models.database.base import Base


class Setting(Base):
    """
    Settings table - stores server tunables as key-value pairs
    """
    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=False)
