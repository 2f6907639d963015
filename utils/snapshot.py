"""
Full-database snapshot export, validation and restore

A snapshot is the JSON document produced by the export endpoint. Import
validates it completely before touching the database, then replaces the
dataset in a single transaction while keeping the ids from the file.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select, text

from models import (
    CurriculumRow,
    CurriculumStandard,
    DropdownItem,
    NavigationTab,
    SchoolYear,
    Standard,
    TableConfig,
)
from utils.errors import ValidationError

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "2.0"
MAX_CURRICULUM_ROWS = 10000
MAX_STANDARDS = 1000

REQUIRED_ROW_FIELDS = (
    'id', 'grade', 'subject', 'objectives', 'unitPacing', 'assessments',
    'materialsAndDifferentiation', 'biblical', 'standards',
)
REQUIRED_STANDARD_FIELDS = ('id', 'code', 'description', 'category')
NAVIGATION_KEYS = ('navigationTabs', 'dropdownItems', 'tableConfigs')

# (metadata key, payload key, checked even when the array is absent)
METADATA_COUNTS = (
    ('totalCurriculumEntries', 'curriculumRows', True),
    ('totalStandards', 'standards', True),
    ('totalNavigationTabs', 'navigationTabs', False),
    ('totalDropdownItems', 'dropdownItems', False),
    ('totalTableConfigs', 'tableConfigs', False),
)


@dataclass
class SnapshotSummary:
    grade_count: int
    subject_count: int


@dataclass
class ImportSummary:
    curriculum_rows: int
    standards: int
    navigation_tabs: int
    dropdown_items: int
    table_configs: int
    grades: int
    subjects: int

    def to_dict(self):
        return {
            'curriculumRows': self.curriculum_rows,
            'standards': self.standards,
            'navigationTabs': self.navigation_tabs,
            'dropdownItems': self.dropdown_items,
            'tableConfigs': self.table_configs,
            'grades': self.grades,
            'subjects': self.subjects,
        }


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _is_text(value) -> bool:
    return isinstance(value, str) and value.strip() != ''


def _check_entity_id(entity, label: str, seen: set):
    if not _is_positive_int(entity['id']):
        raise ValidationError(f"{label} has invalid ID: must be a positive number")
    if entity['id'] in seen:
        raise ValidationError(f"Duplicate {label.rsplit(' ', 1)[0].lower()} ID: {entity['id']}")
    seen.add(entity['id'])


def _check_object(item, label: str, required):
    if not isinstance(item, dict):
        raise ValidationError(f"{label} is not a valid object")
    for field in required:
        if field not in item:
            raise ValidationError(f"{label} missing required field: {field}")


def _check_navigation_flags(entity, label: str):
    order = entity.get('order')
    if order is not None and (isinstance(order, bool) or not isinstance(order, int)):
        raise ValidationError(f"{label} has invalid order: must be an integer")
    is_active = entity.get('isActive')
    if is_active is not None and not isinstance(is_active, bool):
        raise ValidationError(f"{label} has invalid isActive: must be a boolean")


# ----------------------------------------------------------------------
# Validation
# ----------------------------------------------------------------------

def validate_snapshot(payload) -> SnapshotSummary:
    """Check a snapshot, raising ValidationError on the first problem found.

    Returns the number of distinct grades and subjects in the curriculum rows.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Snapshot must be a JSON object")

    rows = payload.get('curriculumRows')
    standards = payload.get('standards')
    metadata = payload.get('metadata')
    if not isinstance(rows, list):
        raise ValidationError("curriculumRows must be an array")
    if not isinstance(standards, list):
        raise ValidationError("standards must be an array")
    if not isinstance(metadata, dict):
        raise ValidationError("metadata must be an object")
    for key in NAVIGATION_KEYS:
        if payload.get(key) is not None and not isinstance(payload[key], list):
            raise ValidationError(f"{key} must be an array")
    school_year = payload.get('schoolYear')
    if school_year is not None:
        if not isinstance(school_year, dict) or not _is_text(school_year.get('year')):
            raise ValidationError("schoolYear must be an object with a non-empty year")

    if len(rows) > MAX_CURRICULUM_ROWS:
        raise ValidationError(f"Too many curriculum rows (max {MAX_CURRICULUM_ROWS:,})")
    if len(standards) > MAX_STANDARDS:
        raise ValidationError(f"Too many standards (max {MAX_STANDARDS:,})")

    grades, subjects = set(), set()
    seen_ids = set()
    for i, row in enumerate(rows):
        label = f"Curriculum row {i + 1}"
        _check_object(row, label, REQUIRED_ROW_FIELDS)
        _check_entity_id(row, label, seen_ids)
        if not _is_text(row['grade']):
            raise ValidationError(f"{label} has invalid grade: must be a non-empty string")
        if not _is_text(row['subject']):
            raise ValidationError(f"{label} has invalid subject: must be a non-empty string")
        if not isinstance(row['standards'], list):
            raise ValidationError(f"{label} has invalid standards: must be an array")
        table_name = row.get('tableName')
        if table_name is not None and not isinstance(table_name, str):
            raise ValidationError(f"{label} has invalid tableName: must be a string")
        grades.add(row['grade'])
        subjects.add(row['subject'])

    seen_ids, seen_codes = set(), set()
    for i, standard in enumerate(standards):
        label = f"Standard {i + 1}"
        _check_object(standard, label, REQUIRED_STANDARD_FIELDS)
        _check_entity_id(standard, label, seen_ids)
        if not _is_text(standard['code']):
            raise ValidationError(f"{label} has invalid code: must be a non-empty string")
        if standard['code'] in seen_codes:
            raise ValidationError(f"Duplicate standard code: {standard['code']}")
        seen_codes.add(standard['code'])
        if not isinstance(standard['description'], str):
            raise ValidationError(f"{label} has invalid description: must be a string")
        if not _is_text(standard['category']):
            raise ValidationError(f"{label} has invalid category: must be a non-empty string")

    _validate_navigation(payload)

    for meta_key, payload_key, always in METADATA_COUNTS:
        items = payload.get(payload_key)
        if items is None and not always:
            continue
        declared = metadata.get(meta_key)
        if isinstance(declared, bool) or declared != len(items):
            raise ValidationError(f"Metadata {meta_key} doesn't match actual {payload_key} count")

    return SnapshotSummary(grade_count=len(grades), subject_count=len(subjects))


def _validate_navigation(payload):
    """Navigation arrays must be well formed and reference each other consistently"""
    tabs = payload.get('navigationTabs') or []
    dropdowns = payload.get('dropdownItems') or []
    configs = payload.get('tableConfigs') or []

    seen_ids, seen_names = set(), set()
    for i, tab in enumerate(tabs):
        label = f"Navigation tab {i + 1}"
        _check_object(tab, label, ('id', 'name'))
        _check_entity_id(tab, label, seen_ids)
        _check_navigation_flags(tab, label)
        if not _is_text(tab['name']):
            raise ValidationError(f"{label} has invalid name: must be a non-empty string")
        if tab['name'] in seen_names:
            raise ValidationError(f"Duplicate navigation tab name: {tab['name']}")
        seen_names.add(tab['name'])
    tab_ids = seen_ids

    seen_ids = set()
    dropdown_tabs = {}
    for i, item in enumerate(dropdowns):
        label = f"Dropdown item {i + 1}"
        _check_object(item, label, ('id', 'tabId', 'name'))
        _check_entity_id(item, label, seen_ids)
        _check_navigation_flags(item, label)
        if not _is_text(item['name']):
            raise ValidationError(f"{label} has invalid name: must be a non-empty string")
        if not _is_positive_int(item['tabId']) or item['tabId'] not in tab_ids:
            raise ValidationError(f"{label} references unknown navigation tab {item['tabId']}")
        dropdown_tabs[item['id']] = item['tabId']

    seen_ids = set()
    for i, config in enumerate(configs):
        label = f"Table config {i + 1}"
        _check_object(config, label, ('id', 'tabId', 'dropdownId', 'tableName'))
        _check_entity_id(config, label, seen_ids)
        _check_navigation_flags(config, label)
        if not _is_text(config['tableName']):
            raise ValidationError(f"{label} has invalid tableName: must be a non-empty string")
        if not _is_positive_int(config['dropdownId']) or config['dropdownId'] not in dropdown_tabs:
            raise ValidationError(f"{label} references unknown dropdown item {config['dropdownId']}")
        if dropdown_tabs[config['dropdownId']] != config['tabId']:
            raise ValidationError(
                f"{label} tabId {config['tabId']} does not own dropdown item {config['dropdownId']}")


# ----------------------------------------------------------------------
# Export
# ----------------------------------------------------------------------

def export_snapshot(store) -> dict:
    rows = [row.to_dict() for row in store.get_all_curriculum_rows()]
    standards = [standard.to_dict() for standard in store.get_all_standards()]
    tabs = [tab.to_dict() for tab in store.get_all_tabs()]
    dropdowns = [item.to_dict() for item in store.get_all_dropdown_items()]
    configs = [config.to_dict() for config in store.get_all_table_configs()]
    school_year = store.session.execute(select(SchoolYear).order_by(SchoolYear.id)).scalars().first()

    return {
        'curriculumRows': rows,
        'standards': standards,
        'navigationTabs': tabs,
        'dropdownItems': dropdowns,
        'tableConfigs': configs,
        'schoolYear': school_year.to_dict() if school_year else None,
        'metadata': {
            'totalCurriculumEntries': len(rows),
            'totalStandards': len(standards),
            'totalNavigationTabs': len(tabs),
            'totalDropdownItems': len(dropdowns),
            'totalTableConfigs': len(configs),
            'exportDate': datetime.now(timezone.utc).isoformat(),
            'version': SNAPSHOT_VERSION,
        },
    }


# ----------------------------------------------------------------------
# Restore
# ----------------------------------------------------------------------

def _text(value) -> str:
    if value is None:
        return ''
    return value if isinstance(value, str) else str(value)


def _timestamp(value) -> datetime:
    """Parse an exported ISO timestamp into the naive UTC form the models store"""
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            logger.warning(f"Unparseable timestamp in snapshot: {value!r}")
        else:
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
            return parsed
    return datetime.utcnow()


def _navigation_fields(entity) -> dict:
    return {
        'id': entity['id'],
        'display_name': _text(entity.get('displayName')),
        'order': entity.get('order') or 0,
        'is_active': entity.get('isActive', True) is not False,
        'created_at': _timestamp(entity.get('createdAt')),
        'updated_at': _timestamp(entity.get('updatedAt')),
    }


def _unique(codes):
    seen = []
    for code in codes:
        code = _text(code)
        if code not in seen:
            seen.append(code)
    return seen


def apply_snapshot(store, payload, summary: Optional[SnapshotSummary] = None) -> ImportSummary:
    """Replace the dataset with a validated snapshot in one transaction"""
    session = store.session
    rows = payload['curriculumRows']
    standards = payload['standards']
    tabs = payload.get('navigationTabs')
    dropdowns = payload.get('dropdownItems')
    configs = payload.get('tableConfigs')
    school_year = payload.get('schoolYear')
    replace_navigation = any(payload.get(key) is not None for key in NAVIGATION_KEYS)

    with store.transaction():
        session.execute(delete(CurriculumStandard))
        session.execute(delete(CurriculumRow))
        session.execute(delete(Standard))
        if replace_navigation:
            session.execute(delete(TableConfig))
            session.execute(delete(DropdownItem))
            session.execute(delete(NavigationTab))

        session.add_all([
            Standard(id=s['id'], code=s['code'], description=s['description'], category=s['category'])
            for s in standards
        ])
        session.flush()

        if replace_navigation:
            session.add_all([NavigationTab(name=tab['name'], **_navigation_fields(tab))
                             for tab in tabs or []])
            session.flush()
            session.add_all([DropdownItem(tab_id=item['tabId'], name=item['name'], **_navigation_fields(item))
                             for item in dropdowns or []])
            session.flush()
            session.add_all([TableConfig(tab_id=config['tabId'], dropdown_id=config['dropdownId'],
                                         table_name=config['tableName'], **_navigation_fields(config))
                             for config in configs or []])
            session.flush()

        session.add_all([
            CurriculumRow(
                id=row['id'],
                grade=row['grade'],
                subject=row['subject'],
                table_name=_text(row.get('tableName')),
                objectives=_text(row['objectives']),
                unit_pacing=_text(row['unitPacing']),
                assessments=_text(row['assessments']),
                materials_and_differentiation=_text(row['materialsAndDifferentiation']),
                biblical=_text(row['biblical']),
                materials=_text(row.get('materials')),
                differentiator=_text(row.get('differentiator')),
            )
            for row in rows
        ])
        session.flush()

        session.add_all([
            CurriculumStandard(curriculum_id=row['id'], standard_code=code)
            for row in rows
            for code in _unique(row['standards'])
        ])
        session.flush()

        if school_year is not None:
            session.execute(delete(SchoolYear))
            session.add(SchoolYear(
                id=school_year['id'] if _is_positive_int(school_year.get('id')) else None,
                year=school_year['year'],
                updated_at=_timestamp(school_year.get('updatedAt')),
            ))
            session.flush()

        _reset_sequences(session)

    if summary is None:
        summary = SnapshotSummary(
            grade_count=len({row['grade'] for row in rows}),
            subject_count=len({row['subject'] for row in rows}),
        )
    result = ImportSummary(
        curriculum_rows=len(rows),
        standards=len(standards),
        navigation_tabs=len(tabs or []),
        dropdown_items=len(dropdowns or []),
        table_configs=len(configs or []),
        grades=summary.grade_count,
        subjects=summary.subject_count,
    )
    logger.info(
        f"Database imported successfully: {result.curriculum_rows} curriculum rows, "
        f"{result.standards} standards, {result.navigation_tabs} navigation tabs"
    )
    return result


def _reset_sequences(session):
    """Restored ids bypass PostgreSQL sequences; move them past the new maximum"""
    if session.get_bind().dialect.name != 'postgresql':
        return
    for table in ('standards', 'navigation_tabs', 'dropdown_items', 'table_configs',
                  'curriculum_rows', 'curriculum_standards', 'school_year'):
        session.execute(text(
            f"SELECT setval(pg_get_serial_sequence('{table}', 'id'), "
            f"COALESCE((SELECT MAX(id) FROM {table}), 0) + 1, false)"
        ))
