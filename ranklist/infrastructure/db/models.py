from sqlalchemy import Column, String, Boolean, ForeignKey, Integer, DateTime, Numeric, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class DivisionModel(Base):
    __tablename__ = 'divisions'
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False, unique=True)
    programs = relationship('EduProgramModel', back_populates='division')


class EduFormModel(Base):
    __tablename__ = 'edu_forms'
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False, unique=True)


class FinancingModel(Base):
    __tablename__ = 'financings'
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False, unique=True)


class EduLevelModel(Base):
    __tablename__ = 'edu_levels'
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False, unique=True)
    programs = relationship('EduProgramModel', back_populates='edu_level')


class EduProgramModel(Base):
    __tablename__ = 'edu_programs'
    __table_args__ = (
        UniqueConstraint('title', 'profile_title', 'edu_level_id', 'division_id', name='uq_edu_program'),
    )
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    profile_title = Column(String, nullable=False, default='')
    edu_level_id = Column(Integer, ForeignKey('edu_levels.id'), nullable=True)
    division_id = Column(Integer, ForeignKey('divisions.id'), nullable=True)
    exam1_title = Column(String, nullable=True)
    exam2_title = Column(String, nullable=True)
    exam3_title = Column(String, nullable=True)

    edu_level = relationship('EduLevelModel', back_populates='programs')
    division = relationship('DivisionModel', back_populates='programs')


class ApplicantModel(Base):
    __tablename__ = 'applicants'
    id = Column(Integer, primary_key=True, autoincrement=True)
    order = Column(Integer, nullable=False)
    ranked_order = Column(Integer, nullable=True)
    name = Column(String, nullable=True)
    has_original = Column(Boolean, default=False, nullable=False)
    has_agreement = Column(Boolean, default=False, nullable=False)
    exam1_rate = Column(Numeric(8, 2), nullable=True)
    exam2_rate = Column(Numeric(8, 2), nullable=True)
    exam3_rate = Column(Numeric(8, 2), nullable=True)
    exam2_mark = Column(String, nullable=True)
    ach_rate = Column(Numeric(8, 2), nullable=True)
    total_rate = Column(Numeric(8, 2), nullable=True)
    category = Column(String, nullable=True)
    has_preemptive_right = Column(Boolean, default=False, nullable=False)
    status = Column(String, nullable=True)
    reject_reason = Column(String, nullable=True)
    edu_program_id = Column(Integer, ForeignKey('edu_programs.id'), nullable=False)
    edu_form_id = Column(Integer, ForeignKey('edu_forms.id'), nullable=False)
    financing_id = Column(Integer, ForeignKey('financings.id'), nullable=False)

    edu_program = relationship('EduProgramModel')
    edu_form = relationship('EduFormModel')
    financing = relationship('FinancingModel')


class SourceFileModel(Base):
    """
    Импортированный файл: имя, время последней записи (UTC) и размер.
    """
    __tablename__ = 'source_files'
    id = Column(Integer, primary_key=True, autoincrement=True)
    filename = Column(String, nullable=False)
    last_write_time_utc = Column(DateTime, nullable=False)
    length = Column(Integer, nullable=False)
