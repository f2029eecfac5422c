from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey, Boolean, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from immomatch.database import Base


class Property(Base):
    """
    Объявление о продаже, полученное с портала (или внесенное вручную).
    Несколько объявлений могут описывать один и тот же реальный объект,
    такие группы сводятся в SharedProperty.
    """
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)

    address = Column(String(500), nullable=True)
    city = Column(String(255), nullable=True, index=True)

    price = Column(Integer, nullable=True)
    size = Column(Float, nullable=True, comment="Площадь, м²")
    type = Column(String(50), nullable=True, index=True)
    rooms = Column(Integer, nullable=True)
    bedrooms = Column(Integer, nullable=True)
    floor = Column(String(20), nullable=True)
    description = Column(Text, nullable=True)

    status = Column(String(20), default="available", index=True)  # available, pending, sold
    owner_type = Column(String(20), nullable=True, index=True)  # private, agency

    agency_name = Column(String(255), nullable=True)
    portal = Column(String(100), nullable=True)
    source = Column(String(100), nullable=True)
    external_id = Column(String(255), nullable=True, index=True)
    external_link = Column(String(1000), nullable=True)
    url = Column(String(1000), nullable=True)

    # {"lat": ..., "lng": ...} или GeoJSON Point
    location = Column(JSON, nullable=True)
    geocode_status = Column(String(20), default="pending")  # pending, success, failed

    is_shared = Column(Boolean, default=False)
    is_multiagency = Column(Boolean, default=False, index=True)
    exclusivity_hint = Column(Boolean, default=False)
    shared_property_id = Column(
        Integer, ForeignKey("shared_properties.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    shared_property = relationship("SharedProperty", back_populates="properties")
    matches = relationship("Match", back_populates="property", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Property(id={self.id}, address={self.address}, price={self.price}, size={self.size})>"
