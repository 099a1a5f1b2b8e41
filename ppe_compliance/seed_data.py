# ppe_compliance/seed_data.py
import os
from datetime import datetime, timezone

from ppe_compliance.database import SessionLocal, init_db
from ppe_compliance.enums import UserRole
from ppe_compliance.models import Camera, User, Worker
from ppe_compliance.router.auth import hash_password

DEFAULT_PASSWORD = os.environ.get("SEED_PASSWORD", "ChangeMe123!")

user_data = [
    {"name": "Site Supervisor", "email": "supervisor@example.com", "role": UserRole.SUPERVISOR},
    {"name": "Safety Analyst", "email": "analyst@example.com", "role": UserRole.ANALYST},
]

camera_data = [
    {"device_id": "CAM-GATE-01", "zone": "Main Gate", "description": "Entrance turnstiles"},
    {"device_id": "CAM-NORTH-01", "zone": "North Wing", "description": "Scaffolding, levels 1-3"},
    {"device_id": "CAM-YARD-01", "zone": "Material Yard", "description": None},
]

worker_data = [
    {"name": "Juan Dela Cruz", "employee_id": "EMP001", "department": "Civil Works"},
    {"name": "Maria Santos", "employee_id": "EMP002", "department": "Civil Works"},
    {"name": "Pedro Reyes", "employee_id": "EMP003", "department": "Electrical"},
    {"name": "Ana Garcia", "employee_id": "EMP004", "department": "Logistics"},
]


def seed(db):
    now = datetime.now(timezone.utc)

    for u in user_data:
        if db.query(User).filter_by(email=u["email"]).first():
            print(f"⚠️ User already exists: {u['email']}")
            continue
        db.add(User(
            name=u["name"],
            email=u["email"],
            hashed_password=hash_password(DEFAULT_PASSWORD),
            role=u["role"],
            is_active=True,
            created_at=now,
        ))
        print(f" Added user: {u['email']} ({u['role'].value})")

    for cam in camera_data:
        if db.query(Camera).filter_by(device_id=cam["device_id"]).first():
            print(f"⚠️ Camera already exists: {cam['device_id']}")
            continue
        db.add(Camera(is_active=True, created_at=now, **cam))
        print(f" Added camera: {cam['device_id']} ({cam['zone']})")

    for w in worker_data:
        if db.query(Worker).filter_by(employee_id=w["employee_id"]).first():
            print(f"⚠️ Worker already exists: {w['employee_id']}")
            continue
        db.add(Worker(is_active=True, created_at=now, **w))
        print(f" Added worker: {w['employee_id']} {w['name']}")

    db.commit()


if __name__ == "__main__":
    init_db()
    db = SessionLocal()
    try:
        seed(db)
    finally:
        db.close()
