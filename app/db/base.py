# app/db/base.py
# Alembic model registry: imports Base + every model so Alembic detects all tables.
# Do NOT import this file from model files (use app.db.base_class instead).
# This file is only imported by:
#   - alembic/env.py        (schema detection)
#   - app/db/init_db.py     (table creation for local dev)
#   - app/main.py           (mapper configuration before first request)

from app.db.base_class import Base  # noqa: F401

# ── Import all models here so Alembic can detect them ────────────────────────
# Order matters: parent tables before child tables (foreign key dependencies)

from app.models.requirement import Requirement, RequirementNote        # noqa: F401, E402
from app.models.tutor_association import TutorAssociation              # noqa: F401, E402
from app.models.demo_session import DemoSession                        # noqa: F401, E402
from app.models.class_ import Class                                    # noqa: F401, E402
from app.models.workflow_event import WorkflowEvent                    # noqa: F401, E402
from app.models.notification import Notification                       # noqa: F401, E402
