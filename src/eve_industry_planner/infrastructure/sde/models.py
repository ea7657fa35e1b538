from typing import Optional, Any
from sqlalchemy.orm import Mapped, mapped_column, declarative_base
from sqlalchemy import Integer, Float, Boolean, JSON

# Declarative base for the static data export (read-only reference data)
BaseSde = declarative_base()


class Types(BaseSde):
    __tablename__ = "types"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    groupID: Mapped[int] = mapped_column(Integer, nullable=True)
    name: Mapped[dict[str, str]] = mapped_column(JSON, nullable=True)
    portionSize: Mapped[int] = mapped_column(Integer, nullable=True)
    published: Mapped[bool] = mapped_column(Boolean, nullable=True)
    volume: Mapped[float] = mapped_column(Float, nullable=True)
    basePrice: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    marketGroupID: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    metaGroupID: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

class Groups(BaseSde):
    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    categoryID: Mapped[int] = mapped_column(Integer, nullable=True)
    name: Mapped[dict[str, str]] = mapped_column(JSON, nullable=True)
    published: Mapped[bool] = mapped_column(Boolean, nullable=True)

class Blueprints(BaseSde):
    __tablename__ = "blueprints"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    blueprintTypeID: Mapped[int] = mapped_column(Integer, nullable=False)
    maxProductionLimit: Mapped[int] = mapped_column(Integer, nullable=False)
    activities: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

class TypeDogma(BaseSde):
    __tablename__ = "typeDogma"

    id: Mapped[int] = mapped_column(primary_key=True)
    # [{"attributeID": 2594, "value": -2.0}, ...]
    dogmaAttributes: Mapped[Optional[list[dict[str, Any]]]] = mapped_column(JSON, nullable=True)
