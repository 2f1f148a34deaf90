from sqlalchemy import Column, Integer, ForeignKey
from sqlalchemy.orm import relationship
from database.db import Base
from models.academic import Term
from models.classes import Class, Stream
from models.subjects import Subject


class ClassSubject(Base):
    __tablename__ = "class_subjects"  # subject offered to a class (or one stream) in a term

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    term_id = Column(Integer, ForeignKey("terms.id"), nullable=False)
    stream_id = Column(Integer, ForeignKey("streams.id"))       # NULL -> whole class
    school_id = Column(Integer, nullable=False, index=True)

    class_ = relationship(Class)
    subject = relationship(Subject)
    term = relationship(Term)
    stream = relationship(Stream)
