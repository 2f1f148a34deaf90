from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from database.db import Base


class AcademicYear(Base):
    __tablename__ = "academic_years"

    id = Column(Integer, primary_key=True, index=True)
    year = Column(Integer, nullable=False)                      # e.g. 2025
    school_id = Column(Integer, nullable=False, index=True)     # tenant


class Term(Base):
    __tablename__ = "terms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)                   # e.g. "Term 1"
    term_number = Column(Integer, nullable=False)               # 1..3
    academic_year_id = Column(Integer, ForeignKey("academic_years.id"), nullable=False)
    school_id = Column(Integer, nullable=False, index=True)

    # ✅ Term -> AcademicYear (N:1)
    academic_year = relationship(AcademicYear)
