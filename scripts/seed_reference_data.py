"""
Seed default asset categories and departments.

Usage:
  python scripts/seed_reference_data.py

This script is idempotent: existing names are left untouched.
"""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from sqlalchemy import func

from assethub.db import Base, SessionLocal, engine
from assethub.models.models import Category, Department


CATEGORIES = ["Laptops", "Desktops", "Monitors", "Mobile Phones", "Tablets", "Furniture", "Networking", "Vehicles"]
DEPARTMENTS = ["IT", "Finance", "Human Resources", "Operations", "Sales", "Marketing"]


def _seed(db, model, names) -> int:
    added = 0
    for name in names:
        exists = db.query(model.id).filter(func.lower(model.name) == name.lower()).first()
        if not exists:
            db.add(model(name=name))
            added += 1
    return added


def seed_reference_data():
    """Seed categories and departments"""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        categories = _seed(db, Category, CATEGORIES)
        departments = _seed(db, Department, DEPARTMENTS)
        db.commit()
        print(f"Seeded {categories} categories and {departments} departments")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_reference_data()
