import copy

import pytest
from sqlalchemy import func, select

from database import db
from models import CurriculumRow, NavigationTab, Standard
from utils import snapshot
from utils.errors import IntegrityError, ValidationError
from utils.patches import CurriculumRowPatch, StandardPatch


def row(row_id, **fields):
    data = {
        'id': row_id,
        'grade': 'KG',
        'subject': 'Math',
        'objectives': '',
        'unitPacing': '',
        'assessments': '',
        'materialsAndDifferentiation': '',
        'biblical': '',
        'standards': [],
    }
    data.update(fields)
    return data


def payload(rows=(), standards=(), **extra):
    data = {
        'curriculumRows': list(rows),
        'standards': list(standards),
        'metadata': {
            'totalCurriculumEntries': len(rows),
            'totalStandards': len(standards),
        },
    }
    data.update(extra)
    return data


def standard(standard_id, **fields):
    data = {'id': standard_id, 'code': f'K.CC.{standard_id}', 'description': '', 'category': 'Math'}
    data.update(fields)
    return data


def standard_without(field):
    data = standard(1)
    del data[field]
    return data


def without_export_date(data):
    data = copy.deepcopy(data)
    data['metadata'].pop('exportDate')
    return data


@pytest.fixture
def populated(store, hierarchy):
    tab, dropdown, config = hierarchy
    store.create_standard(StandardPatch(code='K.CC.1', description='Count to 100', category='Math'))
    store.create_standard(StandardPatch(code='RF.K.1', description='', category='Reading'))
    store.create_curriculum_row(CurriculumRowPatch(
        grade='Grade 1', subject='Math', table_name='Unit Plans',
        objectives='Count objects', unit_pacing='Weeks 1-3', standards=['K.CC.1', 'RF.K.1']))
    store.create_curriculum_row(CurriculumRowPatch(grade='KG', subject='Reading', biblical='Psalm 23'))
    store.update_school_year('2026-2027')
    return store


def test_missing_standards_field_rejected():
    data = row(1)
    del data['standards']
    with pytest.raises(ValidationError, match='missing required field: standards'):
        snapshot.validate_snapshot(payload([data]))


def test_duplicate_row_id_rejected():
    with pytest.raises(ValidationError, match='Duplicate curriculum row ID: 5'):
        snapshot.validate_snapshot(payload([row(5), row(5)]))


def test_metadata_mismatch_rejected():
    standards = [{'id': 1, 'code': 'A', 'description': '', 'category': 'X'},
                 {'id': 2, 'code': 'B', 'description': '', 'category': 'X'}]
    data = payload(standards=standards)
    data['metadata']['totalStandards'] = 3
    with pytest.raises(ValidationError, match="totalStandards doesn't match"):
        snapshot.validate_snapshot(data)


def test_too_many_rows_rejected():
    rows = [row(i + 1) for i in range(snapshot.MAX_CURRICULUM_ROWS + 1)]
    with pytest.raises(ValidationError, match='Too many curriculum rows'):
        snapshot.validate_snapshot(payload(rows))


def test_too_many_standards_rejected():
    standards = [standard(i + 1) for i in range(snapshot.MAX_STANDARDS + 1)]
    with pytest.raises(ValidationError, match='Too many standards'):
        snapshot.validate_snapshot(payload(standards=standards))


def test_payload_at_size_limits_accepted():
    rows = [row(i + 1) for i in range(snapshot.MAX_CURRICULUM_ROWS)]
    standards = [standard(i + 1) for i in range(snapshot.MAX_STANDARDS)]

    summary = snapshot.validate_snapshot(payload(rows, standards))
    assert (summary.grade_count, summary.subject_count) == (1, 1)


def test_first_violation_is_reported():
    """Size bound is checked before per-row fields"""
    rows = [{'id': 'bad'}] * (snapshot.MAX_CURRICULUM_ROWS + 1)
    with pytest.raises(ValidationError, match='Too many'):
        snapshot.validate_snapshot(payload(rows))


@pytest.mark.parametrize('bad, message', [
    (None, 'must be a JSON object'),
    ({'curriculumRows': {}, 'standards': [], 'metadata': {}}, 'curriculumRows must be an array'),
    ({'curriculumRows': [], 'standards': None, 'metadata': {}}, 'standards must be an array'),
    ({'curriculumRows': [], 'standards': []}, 'metadata must be an object'),
    (payload(navigationTabs={}), 'navigationTabs must be an array'),
    (payload([row(0)]), 'invalid ID'),
    (payload([row(1.5)]), 'invalid ID'),
    (payload([row(True)]), 'invalid ID'),
    (payload([row(1, grade='')]), 'invalid grade'),
    (payload([row(1, standards='K.CC.1')]), 'invalid standards'),
    (payload([['not', 'an', 'object']]), 'is not a valid object'),
    (payload(standards=['K.CC.1']), 'Standard 1 is not a valid object'),
    (payload(standards=[standard_without('code')]), 'missing required field: code'),
    (payload(standards=[standard_without('description')]), 'missing required field: description'),
    (payload(standards=[standard_without('category')]), 'missing required field: category'),
    (payload(standards=[standard(0)]), 'Standard 1 has invalid ID'),
    (payload(standards=[standard(-3)]), 'Standard 1 has invalid ID'),
    (payload(standards=[standard('7')]), 'Standard 1 has invalid ID'),
    (payload(standards=[standard(2.0)]), 'Standard 1 has invalid ID'),
    (payload(standards=[standard(3), standard(3, code='RF.K.1')]), 'Duplicate standard ID: 3'),
    (payload(standards=[standard(1, code='')]), 'invalid code'),
    (payload(standards=[standard(1, code='   ')]), 'invalid code'),
    (payload(standards=[standard(1, category='')]), 'invalid category'),
    (payload(standards=[standard(1, description=None)]), 'invalid description'),
    (payload(standards=[standard(1, description=5)]), 'invalid description'),
    (payload(standards=[standard(1, code='A'), standard(2, code='A')]), 'Duplicate standard code: A'),
])
def test_malformed_payloads(bad, message):
    with pytest.raises(ValidationError, match=message):
        snapshot.validate_snapshot(bad)


def test_navigation_references_must_resolve():
    data = payload(
        navigationTabs=[{'id': 1, 'name': 'Grade 1'}],
        dropdownItems=[{'id': 1, 'tabId': 2, 'name': 'Math'}],
    )
    data['metadata'].update(totalNavigationTabs=1, totalDropdownItems=1)
    with pytest.raises(ValidationError, match='unknown navigation tab 2'):
        snapshot.validate_snapshot(data)


def test_navigation_counts_checked_only_when_present():
    data = payload(navigationTabs=[{'id': 1, 'name': 'Grade 1'}])
    with pytest.raises(ValidationError, match='totalNavigationTabs'):
        snapshot.validate_snapshot(data)

    summary = snapshot.validate_snapshot(payload([row(1), row(2, grade='G1', subject='Art')]))
    assert (summary.grade_count, summary.subject_count) == (2, 2)


def test_export_shape(populated):
    data = populated.export_snapshot()

    assert set(data) == {'curriculumRows', 'standards', 'navigationTabs', 'dropdownItems',
                         'tableConfigs', 'schoolYear', 'metadata'}
    assert data['metadata']['version'] == '2.0'
    assert data['metadata']['totalCurriculumEntries'] == 3
    assert data['metadata']['totalNavigationTabs'] == 2
    assert data['schoolYear']['year'] == '2026-2027'
    assert snapshot.validate_snapshot(data).grade_count == 2


def test_round_trip(populated):
    """Applying an export restores the same entities, ids and values"""
    exported = populated.export_snapshot()

    tab = populated.get_active_tabs()[0]
    populated.delete_tab(tab.id)
    populated.create_tab('Grade 9', order=9)
    populated.create_curriculum_row(CurriculumRowPatch(grade='Grade 9', subject='History'))
    populated.update_school_year('1999-2000')

    summary = populated.import_snapshot(copy.deepcopy(exported))

    assert summary.to_dict() == {
        'curriculumRows': 3,
        'standards': 2,
        'navigationTabs': 2,
        'dropdownItems': 1,
        'tableConfigs': 1,
        'grades': 2,
        'subjects': 2,
    }
    assert without_export_date(populated.export_snapshot()) == without_export_date(exported)


def test_import_without_navigation_keeps_hierarchy(populated):
    tabs_before = [tab.to_dict() for tab in populated.get_all_tabs()]

    populated.import_snapshot(payload([row(42, standards=['K.CC.1'])]))

    assert [tab.to_dict() for tab in populated.get_all_tabs()] == tabs_before
    assert [r.id for r in populated.get_all_curriculum_rows()] == [42]
    assert populated.get_curriculum_row(42).standards == ['K.CC.1']
    assert populated.get_all_standards() == []


def test_failed_import_leaves_store_untouched(populated):
    """A database error during apply rolls the whole replace back"""
    before = without_export_date(populated.export_snapshot())
    data = copy.deepcopy(populated.export_snapshot())
    # same table name twice under one dropdown passes validation but not the schema
    duplicate = dict(data['tableConfigs'][0], id=data['tableConfigs'][0]['id'] + 100)
    data['tableConfigs'].append(duplicate)
    data['metadata']['totalTableConfigs'] += 1

    with pytest.raises(IntegrityError):
        populated.import_snapshot(data)

    assert without_export_date(populated.export_snapshot()) == before


def test_invalid_import_never_touches_store(populated):
    rows_before = db.session.execute(select(func.count()).select_from(CurriculumRow)).scalar()

    with pytest.raises(ValidationError):
        populated.import_snapshot(payload([row(1), row(1)]))

    assert db.session.execute(select(func.count()).select_from(CurriculumRow)).scalar() == rows_before
    assert db.session.execute(select(func.count()).select_from(Standard)).scalar() == 2
    assert db.session.execute(select(func.count()).select_from(NavigationTab)).scalar() == 2
