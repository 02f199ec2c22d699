# app/db/init_db.py
# Create all workflow tables directly from the models (local development only)
# Run: python -m app.db.init_db
#
# Deployed databases use Alembic instead: alembic upgrade head

import logging

from dotenv import load_dotenv

load_dotenv()

import app.db.base  # noqa: F401, E402
from app.db.base_class import Base  # noqa: E402
from app.db.session import engine  # noqa: E402

log = logging.getLogger("tutormatch.init_db")


def init_db(bind=engine) -> None:
    """Create any missing tables. Existing tables are left untouched."""
    Base.metadata.create_all(bind=bind)
    log.info(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    init_db()
