from sqlalchemy import create_engine               # SQLAlchemy engine factory
from sqlalchemy.orm import declarative_base, sessionmaker

from config.settings import settings               # ✅ env-driven settings

# ✅ engine built from the configured DB URL
engine = create_engine(settings.DATABASE_URL, echo=settings.DB_ECHO, pool_pre_ping=True)

# ✅ session factory used by every request
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# ✅ declarative Base shared by all models
Base = declarative_base()


# ==========================================================
# [common] request-scoped DB session
# ==========================================================
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
