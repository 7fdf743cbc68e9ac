import logging
import sys
from datetime import timedelta
from decimal import Decimal
from pathlib import Path

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sqlalchemy import func
from sqlmodel import Session, select

from budgello.config import settings
from budgello.core.clock import utcnow
from budgello.core.log import configure_logging
from budgello.database import build_engine, init_db
from budgello.models.budget import Frequency
from budgello.models.user import Role, User
from budgello.services.budgets import BudgetRegistry
from budgello.services.categories import CategoryRegistry
from budgello.services.credentials import CredentialStore
from budgello.services.ledger import TransactionLedger


logger = logging.getLogger("seed_demo_data")

DEMO_USERS = {
    "alice": ("password123", Role.admin),
    "bob": ("password456", Role.user),
}

DEMO_CATEGORIES = {
    "alice": ["Groceries", "Transport", "Entertainment", "Utilities", "Rent"],
    "bob": ["Groceries", "Bus Pass", "Concerts", "Health", "Food"],
}

# (owner, description, amount, days ago, category)
DEMO_TRANSACTIONS = [
    ("alice", "Weekly grocery run", "125.50", 5, "Groceries"),
    ("alice", "Gas for car", "45.00", 4, "Transport"),
    ("alice", "Movie tickets", "32.00", 3, "Entertainment"),
    ("alice", "Electricity bill", "85.75", 2, "Utilities"),
    ("alice", "Monthly rent", "1200.00", 1, "Rent"),
    ("bob", "Supermarket", "78.90", 6, "Groceries"),
    ("bob", "Monthly bus pass", "55.00", 5, "Bus Pass"),
    ("bob", "Rock concert", "150.00", 2, "Concerts"),
    ("bob", "Pharmacy", "25.30", 1, "Health"),
]

DEMO_BUDGETS = [
    ("alice", Frequency.monthly, "2500.00"),
    ("alice", Frequency.yearly, "30000.00"),
    ("bob", Frequency.monthly, "2200.00"),
]


def seed(session: Session) -> bool:
    user_count = session.exec(select(func.count()).select_from(User)).one()
    if user_count > 0:
        logger.info("Database already seeded. Skipping.")
        return False

    logger.info("Seeding database with demo data...")
    users = {
        name: CredentialStore(session).register(name, secret, role=role)
        for name, (secret, role) in DEMO_USERS.items()
    }

    categories = {}
    for owner, names in DEMO_CATEGORIES.items():
        for name in names:
            category = CategoryRegistry(session).create(users[owner].id, name)
            categories[(owner, name)] = category.id

    now = utcnow()
    ledger = TransactionLedger(session)
    for owner, description, amount, days_ago, category in DEMO_TRANSACTIONS:
        ledger.record(
            users[owner].id,
            description=description,
            amount=Decimal(amount),
            date=now - timedelta(days=days_ago),
            category_id=categories[(owner, category)],
        )

    registry = BudgetRegistry(session)
    for owner, frequency, amount in DEMO_BUDGETS:
        registry.create(users[owner].id, frequency=frequency, amount=Decimal(amount), period=now.date())

    logger.info("Database seeding complete.")
    return True


def main():
    configure_logging(settings.log_level)
    engine = build_engine(settings.database_url)
    try:
        init_db(engine)
        with Session(engine) as session:
            seed(session)
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()
