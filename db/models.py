from __future__ import annotations

from sqlalchemy import CheckConstraint, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Largest value an INTEGER (int4) column holds
MAX_INTEGER = 2**31 - 1


class Base(DeclarativeBase):
    pass


class EnvelopeTable(Base):
    __tablename__ = "envelopes"
    __table_args__ = (
        CheckConstraint("budget >= 0", name="ck_envelopes_budget_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    budget: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        return f"EnvelopeTable(id={self.id!r}, title={self.title!r}, budget={self.budget!r})"
