from sqlalchemy import Column, Integer, String, UniqueConstraint
from database.db import Base


class Student(Base):
    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("school_id", "admission_no", name="uq_students_school_admission_no"),
    )

    id = Column(Integer, primary_key=True, index=True)
    admission_no = Column(String(30), nullable=False)           # unique within a school
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100))
    last_name = Column(String(100), nullable=False)
    school_id = Column(Integer, nullable=False, index=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
