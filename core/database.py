"""Database engine and session management."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from core.models import Base
from core.settings import get_settings

settings = get_settings()

engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def import_models() -> None:
    """Register every order table on ``Base.metadata``."""
    from modules.audit import models as audit_models  # noqa: F401
    from modules.control_orders import models as control_models  # noqa: F401
    from modules.customer_orders import models as customer_models  # noqa: F401
    from modules.production_orders import models as production_models  # noqa: F401
    from modules.supply_orders import models as supply_models  # noqa: F401
    from modules.warehouse_orders import models as warehouse_models  # noqa: F401
    from modules.workstation_orders import models as workstation_models  # noqa: F401


def init_db(bind=None) -> None:
    import_models()
    Base.metadata.create_all(bind=bind or engine)
