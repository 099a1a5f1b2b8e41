# ppe_compliance/models.py
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, Enum, Index, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from .database import Base
from .enums import PPECategory, ViolationStatus, UserRole


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(Enum(UserRole, native_enum=False, length=16), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_login_at = Column(DateTime(timezone=True), nullable=True)


class Camera(Base):
    __tablename__ = "cameras"
    id = Column(Integer, primary_key=True)
    device_id = Column(String, unique=True, nullable=False)
    zone = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)
    violations = relationship("Violation", back_populates="camera")


class Worker(Base):
    __tablename__ = "workers"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    employee_id = Column(String, unique=True, nullable=False)
    department = Column(String, nullable=False, server_default="")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    violations = relationship("Violation", back_populates="worker")


class Violation(Base):
    __tablename__ = "violations"
    id = Column(Integer, primary_key=True)
    worker_id = Column(Integer, ForeignKey("workers.id", ondelete="RESTRICT"), nullable=False, index=True)
    camera_id = Column(Integer, ForeignKey("cameras.id", ondelete="RESTRICT"), nullable=False, index=True)
    category = Column(Enum(PPECategory, native_enum=False, length=16), nullable=False, index=True)
    evidence_url = Column(Text, nullable=False, default="")
    confidence_score = Column(Integer, nullable=False)
    detected_at = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(
        Enum(ViolationStatus, native_enum=False, length=16),
        nullable=False,
        default=ViolationStatus.PENDING,
        index=True,
    )
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    worker = relationship("Worker", back_populates="violations")
    camera = relationship("Camera", back_populates="violations")

    __table_args__ = (
        Index("ix_violations_worker_camera_detected", "worker_id", "camera_id", "detected_at"),
        CheckConstraint("confidence_score BETWEEN 0 AND 100", name="ck_violations_confidence_range"),
    )
