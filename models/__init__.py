"""
Initialize models package and expose models
"""
from database import db
from .navigation import (
    NavigationTab,
    DropdownItem,
    TableConfig,
    ADMIN_TAB_NAME,
    ADMIN_TAB_ORDER,
    SYSTEM_ORDER_MIN
)
from .curriculum import (
    CurriculumRow,
    CurriculumStandard,
    Standard,
    SchoolYear
)

__all__ = [
    'db',
    'NavigationTab',
    'DropdownItem',
    'TableConfig',
    'ADMIN_TAB_NAME',
    'ADMIN_TAB_ORDER',
    'SYSTEM_ORDER_MIN',
    'CurriculumRow',
    'CurriculumStandard',
    'Standard',
    'SchoolYear'
]
