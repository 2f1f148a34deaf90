from sqlalchemy import Column, Integer, String, ForeignKey, Enum
from sqlalchemy.orm import relationship
from database.db import Base
from models.enums import Curriculum


class Class(Base):
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)                  # e.g. "Grade 6", "Form 2"
    level = Column(String(50), nullable=False)                  # e.g. "GRADE_6", "FORM_2"
    curriculum = Column(Enum(Curriculum), nullable=False)       # decides grade vs competency level
    school_id = Column(Integer, nullable=False, index=True)


class Stream(Base):
    __tablename__ = "streams"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)                   # e.g. "East", "Blue"
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    school_id = Column(Integer, nullable=False, index=True)

    # ✅ Stream -> Class (N:1)
    class_ = relationship(Class)
