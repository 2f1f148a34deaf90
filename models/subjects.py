from sqlalchemy import Column, Integer, String
from database.db import Base


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)                  # e.g. Mathematics
    code = Column(String(20), nullable=False)                   # e.g. MAT
    school_id = Column(Integer, nullable=False, index=True)
