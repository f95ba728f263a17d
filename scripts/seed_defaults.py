#!/usr/bin/env python3
"""
Create the chatbot tables and seed starter data for one seller.
Usage: python scripts/seed_defaults.py <seller_id> [instance_name]
"""

import sys
import uuid
from datetime import datetime, timezone

from menubot.database import SessionLocal, init_db
from menubot.models import SellerInstance
from menubot.services.default_data import seed_defaults


def register_instance(db, seller_id: uuid.UUID, instance_name: str) -> bool:
    existing = db.query(SellerInstance).filter(SellerInstance.instance_name == instance_name).first()
    if existing is not None:
        return False
    db.add(
        SellerInstance(
            seller_id=seller_id,
            instance_name=instance_name,
            is_active=True,
            created_at=datetime.now(timezone.utc),
        )
    )
    db.commit()
    return True


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/seed_defaults.py <seller_id> [instance_name]")
        sys.exit(1)

    seller_id = uuid.UUID(sys.argv[1])
    instance_name = sys.argv[2] if len(sys.argv) > 2 else None

    init_db()
    db = SessionLocal()
    try:
        created = seed_defaults(db, seller_id)
        print(f"Seeded {seller_id}: {created}")
        if instance_name:
            if register_instance(db, seller_id, instance_name):
                print(f"Registered instance {instance_name}")
            else:
                print(f"Instance {instance_name} already registered")
    finally:
        db.close()


if __name__ == "__main__":
    main()
