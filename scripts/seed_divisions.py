"""
Seed script for administrative divisions.
Creates the wilaya -> moughataa -> commune chain of Dakhlet Nouadhibou and its free zone.
Existing divisions (matched by name) are left untouched.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from wilaiety.db import Base, SessionLocal, engine
from wilaiety.models.models import AdministrativeDivision, DivisionType

# (name, name_fr, type, gps, parent name)
DIVISIONS = [
    ("ولاية داخلت نواذيبو", "Wilaya de Dakhlet Nouadhibou", DivisionType.WILAYA, "20.9420,-17.0470", None),
    ("مقاطعة نواذيبو", "Moughataa de Nouadhibou", DivisionType.MOUGHATAA, "20.9310,-17.0347", "ولاية داخلت نواذيبو"),
    ("بلدية نواذيبو", "Commune de Nouadhibou", DivisionType.COMMUNE, "20.9425,-17.0362", "مقاطعة نواذيبو"),
    ("منطقة نواذيبو الحرة", "Zone Franche de Nouadhibou", DivisionType.FREE_ZONE, "20.9000,-17.0500", "ولاية داخلت نواذيبو"),
]


def seed_divisions():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        by_name = {d.name: d for d in db.query(AdministrativeDivision).all()}
        created = 0
        for name, name_fr, division_type, gps, parent_name in DIVISIONS:
            if name in by_name:
                print(f"'{name_fr}' already exists")
                continue
            parent = by_name.get(parent_name) if parent_name else None
            division = AdministrativeDivision(
                name=name,
                name_fr=name_fr,
                division_type=division_type.value,
                gps_coordinates=gps,
                parent_id=parent.id if parent else None,
                is_active=True,
            )
            db.add(division)
            db.flush()
            by_name[name] = division
            created += 1
            print(f"Created {division_type.value} '{name_fr}'")
        db.commit()
        print(f"✅ Seeded {created} divisions")
    except Exception as e:
        db.rollback()
        print(f"❌ Error seeding divisions: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_divisions()
