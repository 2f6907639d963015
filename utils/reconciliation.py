"""
Orphaned curriculum row reconciliation

Rows point at their table config by name only. When a config disappears
without its rows (manual edits, partial restores) the rows are stranded;
this sweep finds and removes them. Rows with an empty table name predate
table configs and are matched by grade/subject, so they are never touched.
"""
import logging
from typing import Dict, List

from sqlalchemy import select

from models import CurriculumRow, TableConfig

logger = logging.getLogger(__name__)


def build_table_name_index(session) -> Dict[str, List[int]]:
    """Map each table name to the ids of the configs that own it"""
    index: Dict[str, List[int]] = {}
    for config_id, table_name in session.execute(
            select(TableConfig.id, TableConfig.table_name).order_by(TableConfig.id)):
        index.setdefault(table_name, []).append(config_id)
    return index


def find_orphaned_rows(session) -> List[CurriculumRow]:
    index = build_table_name_index(session)
    rows = session.execute(
        select(CurriculumRow).where(CurriculumRow.table_name != '').order_by(CurriculumRow.id)
    ).scalars().all()
    return [row for row in rows if row.table_name not in index]


def cleanup_orphaned_rows(store) -> int:
    """Delete every orphaned row; returns how many were removed"""
    with store.transaction():
        orphan_ids = [row.id for row in find_orphaned_rows(store.session)]
        deleted = 0
        if orphan_ids:
            deleted = store.delete_rows_where(CurriculumRow.id.in_(orphan_ids))

    if deleted:
        logger.info(f"Removed {deleted} orphaned curriculum rows")
    else:
        logger.debug("No orphaned curriculum rows found")
    return deleted
