"""
Database models for curriculum content: rows, standards and the school year
Rows reference table configs and standards by name/code, never by foreign key
"""
from datetime import datetime
from sqlalchemy import Index, UniqueConstraint
from database import db


class CurriculumRow(db.Model):
    __tablename__ = 'curriculum_rows'
    id = db.Column(db.Integer, primary_key=True)
    grade = db.Column(db.String(100), nullable=False)
    subject = db.Column(db.String(100), nullable=False)
    table_name = db.Column(db.String(100), nullable=False, server_default='', default='')
    objectives = db.Column(db.Text, nullable=False, server_default='', default='')
    unit_pacing = db.Column(db.Text, nullable=False, server_default='', default='')
    assessments = db.Column(db.Text, nullable=False, server_default='', default='')
    materials_and_differentiation = db.Column(db.Text, nullable=False, server_default='', default='')
    biblical = db.Column(db.Text, nullable=False, server_default='', default='')
    materials = db.Column(db.Text, nullable=False, server_default='', default='')
    differentiator = db.Column(db.Text, nullable=False, server_default='', default='')

    standard_links = db.relationship('CurriculumStandard', lazy='selectin',
                                     order_by='CurriculumStandard.id',
                                     cascade='all, delete-orphan',
                                     passive_deletes=True)

    __table_args__ = (
        Index('idx_curriculum_grade_subject', 'grade', 'subject'),
        Index('idx_curriculum_table_name', 'table_name'),
    )

    @property
    def standards(self):
        return [link.standard_code for link in self.standard_links]

    def set_standards(self, codes):
        """Replace the linked standard codes, keeping first-seen order"""
        seen = []
        for code in codes:
            if code not in seen:
                seen.append(code)
        self.standard_links = [CurriculumStandard(standard_code=code) for code in seen]

    def to_dict(self):
        return {
            'id': self.id,
            'grade': self.grade,
            'subject': self.subject,
            'tableName': self.table_name,
            'objectives': self.objectives,
            'unitPacing': self.unit_pacing,
            'assessments': self.assessments,
            'materialsAndDifferentiation': self.materials_and_differentiation,
            'biblical': self.biblical,
            'materials': self.materials,
            'differentiator': self.differentiator,
            'standards': self.standards,
        }


class CurriculumStandard(db.Model):
    """Link between a row and a standard code (soft reference to Standard.code)"""
    __tablename__ = 'curriculum_standards'
    id = db.Column(db.Integer, primary_key=True)
    curriculum_id = db.Column(db.Integer, db.ForeignKey('curriculum_rows.id', ondelete='CASCADE'),
                              nullable=False)
    standard_code = db.Column(db.String(50), nullable=False)

    __table_args__ = (
        UniqueConstraint('curriculum_id', 'standard_code', name='uq_curriculum_standard'),
        Index('idx_curriculum_standards_curriculum_id', 'curriculum_id'),
        Index('idx_curriculum_standards_standard_code', 'standard_code'),
    )


class Standard(db.Model):
    __tablename__ = 'standards'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False)  # e.g. "RF.K.1"
    description = db.Column(db.Text, nullable=False, server_default='', default='')
    category = db.Column(db.String(100), nullable=False)

    __table_args__ = (
        Index('idx_standards_category', 'category'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'description': self.description,
            'category': self.category,
        }


class SchoolYear(db.Model):
    """Singleton row holding the school year shown in the header"""
    __tablename__ = 'school_year'
    id = db.Column(db.Integer, primary_key=True)
    year = db.Column(db.String(20), nullable=False)  # e.g. "2025-2026"
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'year': self.year,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
