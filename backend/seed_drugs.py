"""Seed the drugstore with a starter formulary. Existing names are left alone."""
from decimal import Decimal

from hcc.core.config import settings
from hcc.db.init_db import init_db
from hcc.db.session import Database, transaction
from hcc.models.drug import Drug

DRUGS = [
    {"name": "Paracetamol 500mg", "description": "Fever, headache, body pain", "price": "2.50", "quantity": 200},
    {"name": "Dolo 650", "description": "High fever, post-vaccination pain", "price": "3.00", "quantity": 180},
    {"name": "Ibuprofen 400mg", "description": "Pain and inflammation", "price": "3.50", "quantity": 150},
    {"name": "Cetirizine 10mg", "description": "Allergy, sneezing, runny nose", "price": "1.80", "quantity": 160},
    {"name": "Azithromycin 500mg", "description": "Bacterial and respiratory infections", "price": "15.00", "quantity": 80},
    {"name": "Amoxicillin 500mg", "description": "Throat and ear infections", "price": "8.00", "quantity": 100},
    {"name": "Pantoprazole 40mg", "description": "Acidity, gastritis", "price": "6.00", "quantity": 120},
    {"name": "ORS Sachet", "description": "Dehydration, diarrhoea", "price": "20.00", "quantity": 90},
    {"name": "Benadryl Cough Syrup", "description": "Dry and allergic cough", "price": "95.00", "quantity": 40},
    {"name": "Vitamin D3 60K", "description": "Vitamin D deficiency", "price": "35.00", "quantity": 60},
]


def seed_drugs(database: Database) -> int:
    added = 0
    with database.session_scope() as db:
        existing = {name for (name,) in db.query(Drug.name).all()}
        with transaction(db):
            for item in DRUGS:
                if item["name"] in existing:
                    continue
                db.add(
                    Drug(
                        name=item["name"],
                        description=item["description"],
                        price=Decimal(item["price"]),
                        quantity=item["quantity"],
                    )
                )
                added += 1
    return added


if __name__ == "__main__":
    database = Database(settings.DATABASE_URL)
    init_db(database)
    count = seed_drugs(database)
    print(f"✅ Added {count} drugs ({len(DRUGS) - count} already present)")
    database.dispose()
