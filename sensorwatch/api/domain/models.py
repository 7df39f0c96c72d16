"""Database models for API layer."""

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, UniqueConstraint, text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from sensorwatch.monitoring.domain.models import AlertEventType, Rule


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class Device(Base):
    """Monitored device with thresholds and liveness bookkeeping."""

    __tablename__ = "devices"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    organization_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    ingest_key: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Thresholds in canonical units (°C, %RH); NULL means no bound on that side
    temp_min: Mapped[float | None] = mapped_column(Float, nullable=True)
    temp_max: Mapped[float | None] = mapped_column(Float, nullable=True)
    rh_min: Mapped[float | None] = mapped_column(Float, nullable=True)
    rh_max: Mapped[float | None] = mapped_column(Float, nullable=True)

    sample_interval_min: Mapped[int] = mapped_column(Integer, default=15, nullable=False)  # 5..120, step 5
    last_seen: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_evaluated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )  # Newest reading accounted for by the alert lifecycle

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    readings: Mapped[list["SensorReading"]] = relationship(
        "SensorReading", back_populates="device", cascade="all, delete-orphan"
    )
    alerts: Mapped[list["Alert"]] = relationship("Alert", back_populates="device", cascade="all, delete-orphan")


class SensorReading(Base):
    """Raw reading reported by a device."""

    __tablename__ = "sensor_readings"
    __table_args__ = (UniqueConstraint("device_id", "ts", name="uq_sensor_readings_device_ts"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    device_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ts: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    temp_c: Mapped[float | None] = mapped_column(Float, nullable=True)
    rh: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Relationships
    device: Mapped["Device"] = relationship("Device", back_populates="readings")


class Alert(Base):
    """Breach episode for a (device, rule) pair."""

    __tablename__ = "alerts"
    __table_args__ = (
        # At most one active alert per (device, rule)
        Index(
            "uq_alerts_device_rule_active",
            "device_id",
            "rule",
            unique=True,
            postgresql_where=text("active"),
            sqlite_where=text("active"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    device_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    rule: Mapped[Rule] = mapped_column(
        SQLEnum(Rule, name="alert_rule_enum", values_callable=_enum_values), nullable=False
    )
    active: Mapped[bool] = mapped_column(default=True, nullable=False, index=True)
    breach_value: Mapped[float] = mapped_column(Float, nullable=False)
    recovery_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)  # Breach reading ts
    recovered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    device: Mapped["Device"] = relationship("Device", back_populates="alerts")
    events: Mapped[list["AlertEvent"]] = relationship(
        "AlertEvent", back_populates="alert", cascade="all, delete-orphan"
    )


class AlertEvent(Base):
    """Append-only breach/recovery entry of the alert timeline."""

    __tablename__ = "alert_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    alert_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("alerts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    device_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_type: Mapped[AlertEventType] = mapped_column(
        SQLEnum(AlertEventType, name="alert_event_type_enum", values_callable=_enum_values), nullable=False
    )
    value: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    # Relationships
    alert: Mapped["Alert"] = relationship("Alert", back_populates="events")
