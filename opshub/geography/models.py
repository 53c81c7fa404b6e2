from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, true
from sqlalchemy.orm import Mapped, mapped_column

from opshub.core.database import Base
from opshub.core.time import utcnow


class _GeographyNode:
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )


class Cluster(_GeographyNode, Base):
    __tablename__ = "clusters"


class Circle(_GeographyNode, Base):
    __tablename__ = "circles"

    cluster_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("clusters.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )


class Zone(_GeographyNode, Base):
    __tablename__ = "zones"

    circle_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("circles.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )


class Area(_GeographyNode, Base):
    __tablename__ = "areas"

    zone_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("zones.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
