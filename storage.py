"""
Curriculum store

Owns the navigation hierarchy (tabs -> dropdown items -> table configs) and the
curriculum content hanging off it. Every mutation runs inside one database
transaction; cascades delete descendants bottom-up before their owner.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, date
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, distinct, func, or_, select, update

from database import transaction_context
from models import (
    ADMIN_TAB_NAME,
    ADMIN_TAB_ORDER,
    SYSTEM_ORDER_MIN,
    CurriculumRow,
    CurriculumStandard,
    DropdownItem,
    NavigationTab,
    SchoolYear,
    Standard,
    TableConfig,
)
from utils import reconciliation, snapshot
from utils.errors import NotFoundError, ProtectedEntityError, ValidationError
from utils.patches import (
    CurriculumRowPatch,
    DropdownItemPatch,
    StandardPatch,
    TabPatch,
    TableConfigPatch,
)

logger = logging.getLogger(__name__)


@dataclass
class CascadeResult:
    """Counts of descendants removed by a cascade delete"""
    rows_deleted: int = 0
    table_configs_deleted: int = 0
    dropdown_items_deleted: int = 0

    def to_dict(self):
        return {
            'rowsDeleted': self.rows_deleted,
            'tableConfigsDeleted': self.table_configs_deleted,
            'dropdownItemsDeleted': self.dropdown_items_deleted,
        }


def _require_text(value: Optional[str], label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} must be a non-empty string")
    return value.strip()


def current_academic_year(today: Optional[date] = None) -> str:
    """Academic years roll over in August, e.g. "2025-2026" """
    today = today or date.today()
    start = today.year if today.month >= 8 else today.year - 1
    return f"{start}-{start + 1}"


class CurriculumStore:
    def __init__(self, session):
        self.session = session

    def transaction(self):
        return transaction_context(self.session)

    def _scalars(self, statement):
        return self.session.execute(statement).scalars().all()

    # ------------------------------------------------------------------
    # Navigation tabs
    # ------------------------------------------------------------------

    def get_all_tabs(self) -> List[NavigationTab]:
        return self._scalars(select(NavigationTab).order_by(NavigationTab.order, NavigationTab.id))

    def get_active_tabs(self) -> List[NavigationTab]:
        """Active tabs by order, Admin forced last; id breaks ties"""
        tabs = self._scalars(select(NavigationTab).where(NavigationTab.is_active.is_(True)))
        return sorted(tabs, key=lambda tab: (tab.is_admin, tab.order, tab.id))

    def get_tab(self, tab_id: int) -> NavigationTab:
        tab = self.session.get(NavigationTab, tab_id)
        if tab is None:
            raise NotFoundError(f"Navigation tab {tab_id} not found")
        return tab

    def _find_tab_by_name(self, name: str) -> Optional[NavigationTab]:
        return self.session.execute(
            select(NavigationTab).where(NavigationTab.name == name)
        ).scalars().first()

    @staticmethod
    def _check_tab_order(order: int):
        if order >= SYSTEM_ORDER_MIN:
            raise ValidationError(
                f"Order {order} is reserved for system tabs (must be below {SYSTEM_ORDER_MIN})"
            )
        if order < 0:
            raise ValidationError("Order must not be negative")

    def _check_tab_name(self, name, exclude_id=None) -> str:
        name = _require_text(name, "Tab name")
        if name == ADMIN_TAB_NAME:
            raise ValidationError(f"'{ADMIN_TAB_NAME}' is a reserved tab name")
        existing = self._find_tab_by_name(name)
        if existing is not None and existing.id != exclude_id:
            raise ValidationError(f"A tab named '{name}' already exists")
        return name

    def create_tab(self, name: str, display_name: Optional[str] = None, order: int = 0) -> NavigationTab:
        self._check_tab_order(order)
        name = self._check_tab_name(name)
        with self.transaction():
            tab = NavigationTab(name=name, display_name=display_name or name,
                                order=order, is_active=True)
            self.session.add(tab)
        logger.info(f"Created navigation tab {tab.id} ({name})")
        return tab

    def update_tab(self, tab_id: int, patch: TabPatch) -> NavigationTab:
        tab = self.get_tab(tab_id)
        if tab.is_admin:
            raise ProtectedEntityError("The Admin tab is system-managed and cannot be modified")
        if patch.is_empty():
            raise ValidationError("No fields to update")
        if patch.order is not None:
            self._check_tab_order(patch.order)
        if patch.name is not None:
            patch.name = self._check_tab_name(patch.name, exclude_id=tab.id)

        with self.transaction():
            if patch.apply_to(tab):
                tab.updated_at = datetime.utcnow()
        return tab

    def delete_tab(self, tab_id: int) -> CascadeResult:
        """Delete a tab and everything beneath it in one transaction"""
        tab = self.get_tab(tab_id)
        if tab.is_admin:
            raise ProtectedEntityError("The Admin tab is system-managed and cannot be deleted")

        with self.transaction():
            dropdown_ids = self._scalars(select(DropdownItem.id).where(DropdownItem.tab_id == tab_id))
            configs = self._scalars(select(TableConfig).where(or_(
                TableConfig.dropdown_id.in_(dropdown_ids),
                TableConfig.tab_id == tab_id,
            )))
            result = CascadeResult()
            result.rows_deleted = self._delete_rows_for_tables(c.table_name for c in configs)
            result.table_configs_deleted = self._delete_table_configs([c.id for c in configs])
            result.dropdown_items_deleted = self._delete_dropdown_items(dropdown_ids)
            self.session.execute(delete(NavigationTab).where(NavigationTab.id == tab_id))

        logger.info(
            f"Deleted navigation tab {tab_id}: {result.dropdown_items_deleted} dropdown items, "
            f"{result.table_configs_deleted} table configs, {result.rows_deleted} curriculum rows"
        )
        return result

    def ensure_admin_tab(self) -> NavigationTab:
        tab = self._find_tab_by_name(ADMIN_TAB_NAME)
        if tab is None:
            with self.transaction():
                tab = NavigationTab(name=ADMIN_TAB_NAME, display_name=ADMIN_TAB_NAME,
                                    order=ADMIN_TAB_ORDER, is_active=True)
                self.session.add(tab)
            logger.info("Created system Admin tab")
        return tab

    # ------------------------------------------------------------------
    # Cascade steps (callers hold the transaction)
    # ------------------------------------------------------------------

    def delete_rows_where(self, condition) -> int:
        """Delete matching rows and their standard links; the caller holds the transaction"""
        row_ids = select(CurriculumRow.id).where(condition)
        self.session.execute(
            delete(CurriculumStandard).where(CurriculumStandard.curriculum_id.in_(row_ids))
        )
        return self.session.execute(delete(CurriculumRow).where(condition)).rowcount

    def _delete_rows_for_tables(self, table_names: Iterable[str]) -> int:
        names = sorted({name for name in table_names if name})
        if not names:
            return 0
        return self.delete_rows_where(CurriculumRow.table_name.in_(names))

    def _delete_table_configs(self, config_ids: List[int]) -> int:
        if not config_ids:
            return 0
        return self.session.execute(delete(TableConfig).where(TableConfig.id.in_(config_ids))).rowcount

    def _delete_dropdown_items(self, dropdown_ids: List[int]) -> int:
        if not dropdown_ids:
            return 0
        return self.session.execute(delete(DropdownItem).where(DropdownItem.id.in_(dropdown_ids))).rowcount

    # ------------------------------------------------------------------
    # Dropdown items
    # ------------------------------------------------------------------

    def get_all_dropdown_items(self) -> List[DropdownItem]:
        return self._scalars(select(DropdownItem).order_by(
            DropdownItem.tab_id, DropdownItem.order, DropdownItem.id))

    def get_dropdown_items_by_tab(self, tab_id: int) -> List[DropdownItem]:
        return self._scalars(select(DropdownItem).where(DropdownItem.tab_id == tab_id).order_by(
            DropdownItem.order, DropdownItem.id))

    def get_dropdown_item(self, item_id: int) -> DropdownItem:
        item = self.session.get(DropdownItem, item_id)
        if item is None:
            raise NotFoundError(f"Dropdown item {item_id} not found")
        return item

    def _check_dropdown_name(self, tab_id: int, name, exclude_id=None) -> str:
        name = _require_text(name, "Dropdown item name")
        existing = self.session.execute(select(DropdownItem).where(
            DropdownItem.tab_id == tab_id, DropdownItem.name == name)).scalars().first()
        if existing is not None and existing.id != exclude_id:
            raise ValidationError(f"Tab {tab_id} already has a dropdown item named '{name}'")
        return name

    def create_dropdown_item(self, tab_id: int, name: str, display_name: Optional[str] = None,
                             order: int = 0) -> DropdownItem:
        self.get_tab(tab_id)
        name = self._check_dropdown_name(tab_id, name)
        with self.transaction():
            item = DropdownItem(tab_id=tab_id, name=name, display_name=display_name or name,
                                order=order, is_active=True)
            self.session.add(item)
        logger.info(f"Created dropdown item {item.id} ({name}) under tab {tab_id}")
        return item

    def update_dropdown_item(self, item_id: int, patch: DropdownItemPatch) -> DropdownItem:
        item = self.get_dropdown_item(item_id)
        if patch.is_empty():
            raise ValidationError("No fields to update")
        target_tab_id = item.tab_id
        if patch.tab_id is not None:
            target_tab_id = self.get_tab(patch.tab_id).id
        if patch.name is not None or target_tab_id != item.tab_id:
            patch.name = self._check_dropdown_name(
                target_tab_id, patch.name if patch.name is not None else item.name, exclude_id=item.id)

        with self.transaction():
            moved = target_tab_id != item.tab_id
            if patch.apply_to(item):
                item.updated_at = datetime.utcnow()
            if moved:
                # table configs carry their tab id too
                self.session.execute(update(TableConfig).where(
                    TableConfig.dropdown_id == item.id).values(tab_id=target_tab_id))
        return item

    def delete_dropdown_item(self, item_id: int) -> CascadeResult:
        self.get_dropdown_item(item_id)
        with self.transaction():
            configs = self._scalars(select(TableConfig).where(TableConfig.dropdown_id == item_id))
            result = CascadeResult()
            result.rows_deleted = self._delete_rows_for_tables(c.table_name for c in configs)
            result.table_configs_deleted = self._delete_table_configs([c.id for c in configs])
            result.dropdown_items_deleted = self._delete_dropdown_items([item_id])
        logger.info(
            f"Deleted dropdown item {item_id}: {result.table_configs_deleted} table configs, "
            f"{result.rows_deleted} curriculum rows"
        )
        return result

    # ------------------------------------------------------------------
    # Table configs
    # ------------------------------------------------------------------

    def get_all_table_configs(self) -> List[TableConfig]:
        return self._scalars(select(TableConfig).order_by(
            TableConfig.dropdown_id, TableConfig.order, TableConfig.id))

    def get_table_configs_by_dropdown(self, dropdown_id: int) -> List[TableConfig]:
        return self._scalars(select(TableConfig).where(TableConfig.dropdown_id == dropdown_id).order_by(
            TableConfig.order, TableConfig.id))

    def get_table_config(self, config_id: int) -> TableConfig:
        config = self.session.get(TableConfig, config_id)
        if config is None:
            raise NotFoundError(f"Table config {config_id} not found")
        return config

    def _resolve_owner(self, tab_id: int, dropdown_id: int) -> DropdownItem:
        tab = self.get_tab(tab_id)
        dropdown = self.get_dropdown_item(dropdown_id)
        if dropdown.tab_id != tab.id:
            raise ValidationError(f"Dropdown item {dropdown_id} does not belong to tab {tab_id}")
        return dropdown

    def _check_table_name(self, dropdown_id: int, table_name, exclude_id=None) -> str:
        table_name = _require_text(table_name, "Table name")
        existing = self.session.execute(select(TableConfig).where(
            TableConfig.dropdown_id == dropdown_id,
            TableConfig.table_name == table_name)).scalars().first()
        if existing is not None and existing.id != exclude_id:
            raise ValidationError(f"Dropdown item {dropdown_id} already has a table named '{table_name}'")
        return table_name

    def create_table_config(self, tab_id: int, dropdown_id: int, table_name: str,
                            display_name: Optional[str] = None, order: int = 0) -> TableConfig:
        """Create a table config, then seed one empty row for it.

        Seeding runs as a separate step after the config is committed; if it
        fails the config is kept and the failure is only logged.
        """
        dropdown = self._resolve_owner(tab_id, dropdown_id)
        table_name = self._check_table_name(dropdown_id, table_name)
        grade, subject = dropdown.tab.name, dropdown.name

        with self.transaction():
            config = TableConfig(tab_id=tab_id, dropdown_id=dropdown_id, table_name=table_name,
                                 display_name=display_name or table_name, order=order, is_active=True)
            self.session.add(config)
        logger.info(f"Created table config {config.id} ({table_name}) under dropdown {dropdown_id}")

        try:
            self._seed_sample_row(grade, subject, table_name)
        except Exception as e:
            logger.warning(f"Could not seed sample row for table '{table_name}': {str(e)}")

        return config

    def _seed_sample_row(self, grade: str, subject: str, table_name: str) -> Optional[CurriculumRow]:
        with self.transaction():
            existing = self.session.execute(select(CurriculumRow).where(
                CurriculumRow.grade == grade,
                CurriculumRow.subject == subject,
                CurriculumRow.table_name == table_name)).scalars().first()
            if existing is not None:
                logger.info(f"Sample row for table '{table_name}' already exists (row {existing.id})")
                return None
            row = CurriculumRow(grade=grade, subject=subject, table_name=table_name)
            self.session.add(row)
        logger.debug(f"Seeded sample row {row.id} for table '{table_name}'")
        return row

    def update_table_config(self, config_id: int, patch: TableConfigPatch) -> TableConfig:
        config = self.get_table_config(config_id)
        if patch.is_empty():
            raise ValidationError("No fields to update")

        if patch.dropdown_id is not None or patch.tab_id is not None:
            dropdown_id = patch.dropdown_id if patch.dropdown_id is not None else config.dropdown_id
            if patch.tab_id is None:
                patch.tab_id = self.get_dropdown_item(dropdown_id).tab_id
            self._resolve_owner(patch.tab_id, dropdown_id)
        target_dropdown = patch.dropdown_id if patch.dropdown_id is not None else config.dropdown_id
        if patch.table_name is not None or target_dropdown != config.dropdown_id:
            patch.table_name = self._check_table_name(
                target_dropdown,
                patch.table_name if patch.table_name is not None else config.table_name,
                exclude_id=config.id)

        old_name = config.table_name
        with self.transaction():
            if patch.apply_to(config):
                config.updated_at = datetime.utcnow()
            if config.table_name != old_name:
                self._repoint_rows(config, old_name)
        return config

    def _repoint_rows(self, config: TableConfig, old_name: str):
        """Move rows to a renamed table unless another config still uses the old name"""
        still_used = self.session.execute(select(func.count(TableConfig.id)).where(
            TableConfig.table_name == old_name, TableConfig.id != config.id)).scalar()
        if still_used:
            return
        moved = self.session.execute(update(CurriculumRow).where(
            CurriculumRow.table_name == old_name).values(table_name=config.table_name)).rowcount
        logger.info(f"Renamed table '{old_name}' to '{config.table_name}', moved {moved} rows")

    def delete_table_config(self, config_id: int) -> bool:
        config = self.session.get(TableConfig, config_id)
        if config is None:
            return False
        table_name = config.table_name
        with self.transaction():
            rows_deleted = self._delete_rows_for_tables([table_name])
            self._delete_table_configs([config_id])
        logger.info(f"Deleted table config {config_id} ({table_name}) and {rows_deleted} curriculum rows")
        return True

    # ------------------------------------------------------------------
    # Curriculum rows
    # ------------------------------------------------------------------

    def get_curriculum_rows(self, grade: str, subject: str,
                            table_name: Optional[str] = None) -> List[CurriculumRow]:
        statement = select(CurriculumRow).where(
            CurriculumRow.grade == grade, CurriculumRow.subject == subject)
        if table_name is not None:
            statement = statement.where(CurriculumRow.table_name == table_name)
        return self._scalars(statement.order_by(CurriculumRow.id))

    def get_all_curriculum_rows(self) -> List[CurriculumRow]:
        return self._scalars(select(CurriculumRow).order_by(
            CurriculumRow.grade, CurriculumRow.subject, CurriculumRow.id))

    def get_curriculum_row(self, row_id: int) -> CurriculumRow:
        row = self.session.get(CurriculumRow, row_id)
        if row is None:
            raise NotFoundError(f"Curriculum row {row_id} not found")
        return row

    def create_curriculum_row(self, patch: CurriculumRowPatch) -> CurriculumRow:
        patch.require('grade', 'subject')
        values = patch.present()
        values['grade'] = _require_text(patch.grade, "Grade")
        values['subject'] = _require_text(patch.subject, "Subject")
        codes = values.pop('standards', [])
        with self.transaction():
            row = CurriculumRow(**values)
            row.set_standards(codes)
            self.session.add(row)
        return row

    def update_curriculum_row(self, row_id: int, patch: CurriculumRowPatch) -> CurriculumRow:
        row = self.get_curriculum_row(row_id)
        if patch.is_empty():
            raise ValidationError("No fields to update")
        if patch.grade is not None:
            patch.grade = _require_text(patch.grade, "Grade")
        if patch.subject is not None:
            patch.subject = _require_text(patch.subject, "Subject")

        with self.transaction():
            patch.apply_to(row, skip=('standards',))
            if patch.standards is not None:
                # old links must be gone before re-inserting the same codes
                row.standard_links.clear()
                self.session.flush()
                row.set_standards(patch.standards)
        return row

    def delete_curriculum_row(self, row_id: int):
        row = self.get_curriculum_row(row_id)
        with self.transaction():
            self.session.delete(row)

    def search_curriculum_rows(self, query: str) -> List[CurriculumRow]:
        query = _require_text(query, "Search query")
        term = f"%{query}%"
        return self._scalars(select(CurriculumRow).where(or_(
            CurriculumRow.objectives.ilike(term),
            CurriculumRow.assessments.ilike(term),
            CurriculumRow.materials_and_differentiation.ilike(term),
            CurriculumRow.biblical.ilike(term),
        )).order_by(CurriculumRow.grade, CurriculumRow.subject, CurriculumRow.id))

    def get_grades(self) -> List[str]:
        return self._scalars(select(CurriculumRow.grade).distinct().order_by(CurriculumRow.grade))

    def get_subjects(self) -> List[str]:
        return self._scalars(select(CurriculumRow.subject).distinct().order_by(CurriculumRow.subject))

    def get_subjects_by_grade(self, grade: str) -> List[str]:
        return self._scalars(select(CurriculumRow.subject).distinct().where(
            CurriculumRow.grade == grade).order_by(CurriculumRow.subject))

    # ------------------------------------------------------------------
    # Standards
    # ------------------------------------------------------------------

    def get_all_standards(self) -> List[Standard]:
        return self._scalars(select(Standard).order_by(Standard.category, Standard.code))

    def get_standards_by_category(self, category: str) -> List[Standard]:
        return self._scalars(select(Standard).where(Standard.category == category).order_by(Standard.code))

    def get_standard_categories(self) -> List[str]:
        return self._scalars(select(Standard.category).distinct().order_by(Standard.category))

    def create_standard(self, patch: StandardPatch) -> Standard:
        patch.require('code', 'category')
        code = _require_text(patch.code, "Standard code")
        category = _require_text(patch.category, "Standard category")
        existing = self.session.execute(select(Standard).where(Standard.code == code)).scalars().first()
        if existing is not None:
            raise ValidationError(f"Standard code '{code}' already exists")
        with self.transaction():
            standard = Standard(code=code, description=patch.description or '', category=category)
            self.session.add(standard)
        return standard

    # ------------------------------------------------------------------
    # School year
    # ------------------------------------------------------------------

    def get_school_year(self) -> SchoolYear:
        school_year = self.session.execute(select(SchoolYear).order_by(SchoolYear.id)).scalars().first()
        if school_year is None:
            with self.transaction():
                school_year = SchoolYear(year=current_academic_year(), updated_at=datetime.utcnow())
                self.session.add(school_year)
            logger.info(f"Initialized school year {school_year.year}")
        return school_year

    def update_school_year(self, year: str) -> SchoolYear:
        year = _require_text(year, "School year")
        school_year = self.get_school_year()
        with self.transaction():
            school_year.year = year
            school_year.updated_at = datetime.utcnow()
        return school_year

    # ------------------------------------------------------------------
    # Maintenance and snapshots
    # ------------------------------------------------------------------

    def get_database_stats(self) -> Dict[str, int]:
        def count(statement):
            return self.session.execute(statement).scalar() or 0

        return {
            'totalCurriculumRows': count(select(func.count(CurriculumRow.id))),
            'totalStandards': count(select(func.count(Standard.id))),
            'totalGrades': count(select(func.count(distinct(CurriculumRow.grade)))),
            'totalSubjects': count(select(func.count(distinct(CurriculumRow.subject)))),
            'totalCategories': count(select(func.count(distinct(Standard.category)))),
        }

    def cleanup_orphaned_rows(self) -> int:
        return reconciliation.cleanup_orphaned_rows(self)

    def export_snapshot(self) -> dict:
        return snapshot.export_snapshot(self)

    def import_snapshot(self, payload) -> snapshot.ImportSummary:
        """Validate a snapshot and replace the whole dataset with it"""
        summary = snapshot.validate_snapshot(payload)
        return snapshot.apply_snapshot(self, payload, summary)
