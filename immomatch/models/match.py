from sqlalchemy import Column, Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from immomatch.database import Base


class Match(Base):
    """
    Закэшированный результат метчинга клиента с объектом.
    Набор строк клиента всегда заменяется целиком (delete + insert в одной транзакции),
    поэтому created_at у всех строк одного поколения совпадает.
    """
    __tablename__ = "matches"
    __table_args__ = (
        CheckConstraint("score > 0 AND score <= 100", name="ck_matches_score_range"),
        CheckConstraint(
            "(shared_property_id IS NULL) <> (property_id IS NULL)", name="ck_matches_single_ref"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    shared_property_id = Column(
        Integer, ForeignKey("shared_properties.id", ondelete="CASCADE"), nullable=True, index=True
    )
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=True, index=True)

    score = Column(Integer, nullable=False, comment="Оценка совпадения (1-100)")

    # Проставляется приложением, а не сервером: одно значение на всё поколение
    created_at = Column(DateTime(timezone=True), nullable=False)

    client = relationship("Client", back_populates="matches")
    shared_property = relationship("SharedProperty", back_populates="matches")
    property = relationship("Property", back_populates="matches")

    def __repr__(self):
        return (
            f"<Match(id={self.id}, client_id={self.client_id}, shared_property_id={self.shared_property_id}, "
            f"property_id={self.property_id}, score={self.score})>"
        )
