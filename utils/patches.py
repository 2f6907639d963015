"""
Partial-update structures for store entities

Each patch lists the JSON keys it understands and the model attribute each one
maps to. A field left as None was not supplied and is not applied. Unknown keys
are ignored so clients can send back whole objects they previously fetched.
"""
from dataclasses import dataclass, fields
from typing import ClassVar, Dict, List, Optional, Tuple

from utils.errors import ValidationError


def _check_type(key: str, value, expected):
    if expected is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"Field '{key}' must be an integer")
    elif expected is bool:
        if not isinstance(value, bool):
            raise ValidationError(f"Field '{key}' must be a boolean")
    elif expected is str:
        if not isinstance(value, str):
            raise ValidationError(f"Field '{key}' must be a string")
    elif expected is list:
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ValidationError(f"Field '{key}' must be a list of strings")
    return value


class _Patch:
    # json key -> (attribute, type)
    FIELDS: ClassVar[Dict[str, Tuple[str, type]]] = {}

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        values = {}
        for key, (attr, expected) in cls.FIELDS.items():
            if key in data and data[key] is not None:
                values[attr] = _check_type(key, data[key], expected)
        return cls(**values)

    def present(self) -> Dict[str, object]:
        """Attributes that were supplied, in declaration order"""
        return {f.name: getattr(self, f.name) for f in fields(self)
                if getattr(self, f.name) is not None}

    def is_empty(self) -> bool:
        return not self.present()

    def require(self, *attrs):
        """Raise ValidationError naming the first missing attribute"""
        json_names = {attr: key for key, (attr, _) in self.FIELDS.items()}
        for attr in attrs:
            if getattr(self, attr) is None:
                raise ValidationError(f"Missing required field: {json_names.get(attr, attr)}")
        return self

    def apply_to(self, entity, skip=()) -> List[str]:
        """Copy supplied fields onto entity; returns the attributes changed"""
        changed = []
        for attr, value in self.present().items():
            if attr in skip:
                continue
            if getattr(entity, attr) != value:
                setattr(entity, attr, value)
                changed.append(attr)
        return changed


@dataclass
class TabPatch(_Patch):
    FIELDS: ClassVar[Dict[str, Tuple[str, type]]] = {
        'name': ('name', str),
        'displayName': ('display_name', str),
        'order': ('order', int),
        'isActive': ('is_active', bool),
    }

    name: Optional[str] = None
    display_name: Optional[str] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None


@dataclass
class DropdownItemPatch(_Patch):
    FIELDS: ClassVar[Dict[str, Tuple[str, type]]] = {
        'tabId': ('tab_id', int),
        'name': ('name', str),
        'displayName': ('display_name', str),
        'order': ('order', int),
        'isActive': ('is_active', bool),
    }

    tab_id: Optional[int] = None
    name: Optional[str] = None
    display_name: Optional[str] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None


@dataclass
class TableConfigPatch(_Patch):
    FIELDS: ClassVar[Dict[str, Tuple[str, type]]] = {
        'tabId': ('tab_id', int),
        'dropdownId': ('dropdown_id', int),
        'tableName': ('table_name', str),
        'displayName': ('display_name', str),
        'order': ('order', int),
        'isActive': ('is_active', bool),
    }

    tab_id: Optional[int] = None
    dropdown_id: Optional[int] = None
    table_name: Optional[str] = None
    display_name: Optional[str] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None


@dataclass
class CurriculumRowPatch(_Patch):
    FIELDS: ClassVar[Dict[str, Tuple[str, type]]] = {
        'grade': ('grade', str),
        'subject': ('subject', str),
        'tableName': ('table_name', str),
        'objectives': ('objectives', str),
        'unitPacing': ('unit_pacing', str),
        'assessments': ('assessments', str),
        'materialsAndDifferentiation': ('materials_and_differentiation', str),
        'biblical': ('biblical', str),
        'materials': ('materials', str),
        'differentiator': ('differentiator', str),
        'standards': ('standards', list),
    }

    grade: Optional[str] = None
    subject: Optional[str] = None
    table_name: Optional[str] = None
    objectives: Optional[str] = None
    unit_pacing: Optional[str] = None
    assessments: Optional[str] = None
    materials_and_differentiation: Optional[str] = None
    biblical: Optional[str] = None
    materials: Optional[str] = None
    differentiator: Optional[str] = None
    standards: Optional[List[str]] = None


@dataclass
class StandardPatch(_Patch):
    FIELDS: ClassVar[Dict[str, Tuple[str, type]]] = {
        'code': ('code', str),
        'description': ('description', str),
        'category': ('category', str),
    }

    code: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None


@dataclass
class SchoolYearPatch(_Patch):
    FIELDS: ClassVar[Dict[str, Tuple[str, type]]] = {
        'year': ('year', str),
    }

    year: Optional[str] = None
