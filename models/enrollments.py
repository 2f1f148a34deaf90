from sqlalchemy import Column, Integer, ForeignKey, Enum
from sqlalchemy.orm import relationship
from database.db import Base
from models.enums import EnrollmentStatus
from models.academic import AcademicYear
from models.classes import Class, Stream
from models.students import Student


class StudentClass(Base):
    __tablename__ = "student_classes"  # student -> class enrollment

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    stream_id = Column(Integer, ForeignKey("streams.id"))
    academic_year_id = Column(Integer, ForeignKey("academic_years.id"))
    status = Column(Enum(EnrollmentStatus), nullable=False, default=EnrollmentStatus.ACTIVE)
    school_id = Column(Integer, nullable=False, index=True)

    student = relationship(Student)
    class_ = relationship(Class)
    stream = relationship(Stream)
    academic_year = relationship(AcademicYear)
