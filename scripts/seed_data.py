"""
Local seed data: one admin, one tutor with two students, an active period and
a few store items. Safe to run repeatedly.
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import datetime, timezone  # noqa: E402

from portalapi.database.connection import SessionLocal  # noqa: E402
from portalapi.models import (  # noqa: E402
    Period,
    PeriodStatus,
    StoreItem,
    User,
    UserRole,
)


def _get_or_create_user(db, username, role, tutor_id=None):
    user = db.query(User).filter(User.username == username).first()
    if user:
        print(f"Existing user: {username}")
        return user

    user = User(
        username=username,
        first_name=username.capitalize(),
        last_name="Demo",
        email=f"{username}@example.com",
        role=role.value,
        tutor_id=tutor_id,
        is_active=True,
        points=0,
        experience=0,
    )
    db.add(user)
    db.flush()
    print(f"User added: {username} ({role.value})")
    return user


def seed_users():
    db = SessionLocal()
    try:
        _get_or_create_user(db, "admin", UserRole.ADMIN)
        tutor = _get_or_create_user(db, "tutor", UserRole.TUTOR)
        for username in ("ayse", "mehmet"):
            _get_or_create_user(db, username, UserRole.STUDENT, tutor_id=tutor.id)
        db.commit()

    except Exception as e:
        db.rollback()
        print(f"User seed failed: {str(e)}")
        raise
    finally:
        db.close()


def seed_period():
    db = SessionLocal()
    try:
        active = (
            db.query(Period).filter(Period.status == PeriodStatus.ACTIVE.value).first()
        )
        if active:
            print(f"Active period already exists: {active.name}")
            return

        period = Period(
            name="2025 Güz",
            start_date=datetime(2025, 9, 1, tzinfo=timezone.utc),
            status=PeriodStatus.ACTIVE.value,
        )
        db.add(period)
        db.commit()
        print(f"Active period created: {period.name}")

    except Exception as e:
        db.rollback()
        print(f"Period seed failed: {str(e)}")
        raise
    finally:
        db.close()


def seed_store_items():
    default_items = [
        {"name": "Defter", "description": "Kareli defter", "points_required": 50},
        {"name": "Kupa", "description": "Okul logolu kupa", "points_required": 150},
        {"name": "Sweatshirt", "points_required": 500},
    ]

    db = SessionLocal()
    try:
        for item_data in default_items:
            existing = (
                db.query(StoreItem).filter(StoreItem.name == item_data["name"]).first()
            )
            if existing:
                print(f"Existing item: {item_data['name']}")
                continue

            db.add(StoreItem(is_active=True, **item_data))
            print(f"Item added: {item_data['name']}")

        db.commit()

    except Exception as e:
        db.rollback()
        print(f"Store seed failed: {str(e)}")
        raise
    finally:
        db.close()


def main():
    seed_users()
    seed_period()
    seed_store_items()
    print("Seed data ready")


if __name__ == "__main__":
    main()
