from __future__ import annotations

import ledger_fx.models  # noqa: F401
from ledger_fx.core.config import settings
from ledger_fx.core.db import engine
from ledger_fx.core.models import Base


def bootstrap() -> None:
    # Outside dev, the schema is owned by alembic migrations.
    if settings.environment in {"dev", "test"} and str(settings.database_url).startswith("sqlite"):
        Base.metadata.create_all(engine)
