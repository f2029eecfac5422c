from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey, Boolean, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from immomatch.database import Base


class SharedProperty(Base):
    """
    Сводная карточка объекта, который продается через несколько агентств/порталов.
    agencies: [{"name": ..., "link": ..., "sourcePropertyId": ...}, ...]
    """
    __tablename__ = "shared_properties"

    id = Column(Integer, primary_key=True, index=True)

    address = Column(String(500), nullable=False)
    city = Column(String(255), nullable=True)
    price = Column(Integer, nullable=True)
    size = Column(Float, nullable=True)
    type = Column(String(50), nullable=True)
    rooms = Column(Integer, nullable=True)
    floor = Column(String(20), nullable=True)
    location = Column(JSON, nullable=True)

    agencies = Column(JSON, nullable=False, default=list)

    is_multiagency = Column(Boolean, default=False, index=True)
    is_ignored = Column(Boolean, default=False, index=True)
    is_acquired = Column(Boolean, default=False, index=True)
    is_favorite = Column(Boolean, default=False)
    match_buyers = Column(Boolean, default=False, comment="Участвует ли карточка в подборе покупателей")

    stage = Column(String(50), default="address_found")
    stage_result = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    properties = relationship("Property", back_populates="shared_property")
    notes = relationship(
        "SharedPropertyNote", back_populates="shared_property", cascade="all, delete-orphan"
    )
    matches = relationship("Match", back_populates="shared_property", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<SharedProperty(id={self.id}, address={self.address}, agencies={len(self.agencies or [])})>"


class SharedPropertyNote(Base):
    """Заметка агента по сводной карточке"""
    __tablename__ = "shared_property_notes"

    id = Column(Integer, primary_key=True, index=True)
    shared_property_id = Column(
        Integer, ForeignKey("shared_properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject = Column(String(255), nullable=False)
    notes = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    shared_property = relationship("SharedProperty", back_populates="notes")

    def __repr__(self):
        return f"<SharedPropertyNote(id={self.id}, shared_property_id={self.shared_property_id})>"
