from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from immomatch.database import Base


class Client(Base):
    """
    Клиент агентства (покупатель или продавец)
    """
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(20), nullable=False, index=True)  # buyer, seller

    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    buyer = relationship("Buyer", back_populates="client", uselist=False, cascade="all, delete-orphan")
    matches = relationship("Match", back_populates="client", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Client(id={self.id}, type={self.type}, name={self.first_name} {self.last_name})>"


class Buyer(Base):
    """
    Критерии поиска покупателя.
    Заполняются при создании клиента-покупателя, правятся вручную или геокодером зон.
    """
    __tablename__ = "buyers"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)

    min_size = Column(Integer, nullable=True, comment="Минимальная площадь, м²")
    max_price = Column(Integer, nullable=True, comment="Максимальный бюджет, EUR")
    property_type = Column(String(50), nullable=True)
    rooms = Column(Integer, nullable=True)

    # GeoJSON FeatureCollection / {center, radius} / точка, см. schemas.search_area
    search_area = Column(JSON, nullable=True)
    search_area_status = Column(String(20), nullable=True)  # pending, success, partial, failed
    search_area_updated_at = Column(DateTime(timezone=True), nullable=True)

    client = relationship("Client", back_populates="buyer")

    def __repr__(self):
        return f"<Buyer(id={self.id}, client_id={self.client_id}, max_price={self.max_price}, min_size={self.min_size})>"
