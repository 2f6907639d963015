"""
Navigation hierarchy models: tabs (grades) -> dropdown items (subjects) -> table configs
"""
from datetime import datetime
from sqlalchemy import Index, UniqueConstraint
from database import db

ADMIN_TAB_NAME = 'Admin'
SYSTEM_ORDER_MIN = 100
ADMIN_TAB_ORDER = 999


def _isoformat(value):
    return value.isoformat() if value else None


class NavigationTab(db.Model):
    __tablename__ = 'navigation_tabs'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)  # e.g. "Grade 1", "Admin"
    display_name = db.Column(db.String(255), nullable=False, server_default='')
    order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    dropdown_items = db.relationship('DropdownItem', backref='tab', lazy=True,
                                     passive_deletes=True)

    @property
    def is_admin(self):
        return self.name == ADMIN_TAB_NAME

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'displayName': self.display_name,
            'order': self.order,
            'isActive': self.is_active,
            'createdAt': _isoformat(self.created_at),
            'updatedAt': _isoformat(self.updated_at),
        }


class DropdownItem(db.Model):
    __tablename__ = 'dropdown_items'
    id = db.Column(db.Integer, primary_key=True)
    tab_id = db.Column(db.Integer, db.ForeignKey('navigation_tabs.id'), nullable=False)
    name = db.Column(db.String(100), nullable=False)  # e.g. "Math"
    display_name = db.Column(db.String(255), nullable=False, server_default='')
    order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    table_configs = db.relationship('TableConfig', backref='dropdown', lazy=True,
                                    passive_deletes=True)

    __table_args__ = (
        UniqueConstraint('tab_id', 'name', name='uq_dropdown_tab_name'),
        Index('idx_dropdown_tab', 'tab_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'tabId': self.tab_id,
            'name': self.name,
            'displayName': self.display_name,
            'order': self.order,
            'isActive': self.is_active,
            'createdAt': _isoformat(self.created_at),
            'updatedAt': _isoformat(self.updated_at),
        }


class TableConfig(db.Model):
    __tablename__ = 'table_configs'
    id = db.Column(db.Integer, primary_key=True)
    tab_id = db.Column(db.Integer, db.ForeignKey('navigation_tabs.id'), nullable=False)
    dropdown_id = db.Column(db.Integer, db.ForeignKey('dropdown_items.id'), nullable=False)
    table_name = db.Column(db.String(100), nullable=False)  # matched by CurriculumRow.table_name
    display_name = db.Column(db.String(255), nullable=False, server_default='')
    order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('dropdown_id', 'table_name', name='uq_table_config_dropdown_name'),
        Index('idx_table_config_table_name', 'table_name'),
        Index('idx_table_config_dropdown', 'dropdown_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'tabId': self.tab_id,
            'dropdownId': self.dropdown_id,
            'tableName': self.table_name,
            'displayName': self.display_name,
            'order': self.order,
            'isActive': self.is_active,
            'createdAt': _isoformat(self.created_at),
            'updatedAt': _isoformat(self.updated_at),
        }
