"""
Flask CLI commands for database setup and maintenance
"""
import json
import logging
from pathlib import Path

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy import inspect, select

from database import db
from models import Standard
from utils.errors import CurriculumError
from utils.patches import StandardPatch

logger = logging.getLogger(__name__)

EXPECTED_TABLES = ['navigation_tabs', 'dropdown_items', 'table_configs', 'curriculum_rows',
                   'curriculum_standards', 'standards', 'school_year']

SAMPLE_STANDARDS = [
    ("VA:Cr2.1.Ka", "Through experimentation, build skills in various media and approaches to art-making.", "Visual Arts"),
    ("VA:Re7.1.Ka", "Identify uses of art within one's personal environment.", "Visual Arts"),
    ("VA:Cn10.1.Ka", "Create art that tells a story about a life experience.", "Visual Arts"),
    ("RF.K.1", "Demonstrate understanding of the organization and basic features of print.", "Reading Foundational Skills"),
    ("RF.K.2", "Demonstrate understanding of spoken words, syllables, and sounds (phonemes).", "Reading Foundational Skills"),
    ("RF.K.3", "Know and apply grade-level phonics and word analysis skills in decoding words.", "Reading Foundational Skills"),
    ("SL.K.1", "Participate in collaborative conversations with diverse partners about kindergarten topics and texts.", "Speaking and Listening"),
    ("SL.K.2", "Confirm understanding of a text read aloud or information presented orally or through other media.", "Speaking and Listening"),
]

def _store():
    return current_app.extensions['curriculum_store']

@click.command('init-db')
@click.option('--seed-standards', is_flag=True, help='Add the sample standards when missing.')
@with_appcontext
def init_db_command(seed_standards):
    """Create tables, the Admin tab and the school year"""
    db.create_all()
    tables = inspect(db.engine).get_table_names()
    missing_tables = [table for table in EXPECTED_TABLES if table not in tables]
    if missing_tables:
        raise click.ClickException(f"Missing tables: {', '.join(missing_tables)}")

    store = _store()
    store.ensure_admin_tab()
    school_year = store.get_school_year()

    added = 0
    if seed_standards:
        existing = set(db.session.execute(select(Standard.code)).scalars())
        for code, description, category in SAMPLE_STANDARDS:
            if code in existing:
                continue
            store.create_standard(StandardPatch(code=code, description=description, category=category))
            added += 1

    click.echo(f"Initialized database ({len(tables)} tables, school year {school_year.year})")
    if seed_standards:
        click.echo(f"Added {added} sample standards")

@click.command('cleanup-orphans')
@with_appcontext
def cleanup_orphans_command():
    """Delete curriculum rows whose table no longer exists"""
    deleted = _store().cleanup_orphaned_rows()
    click.echo(f"Removed {deleted} orphaned curriculum rows")

@click.command('export-snapshot')
@click.argument('path', type=click.Path(dir_okay=False, writable=True))
@with_appcontext
def export_snapshot_command(path):
    """Write the whole dataset to PATH as JSON"""
    data = _store().export_snapshot()
    Path(path).write_text(json.dumps(data, indent=2), encoding='utf-8')
    click.echo(f"Exported {data['metadata']['totalCurriculumEntries']} curriculum rows to {path}")

@click.command('import-snapshot')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_snapshot_command(path):
    """Validate the snapshot at PATH and replace the dataset with it"""
    try:
        payload = json.loads(Path(path).read_text(encoding='utf-8'))
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{path} is not valid JSON: {e}")

    try:
        summary = _store().import_snapshot(payload)
    except CurriculumError as e:
        logger.error(f"Snapshot import failed: {e.message}")
        raise click.ClickException(e.message)

    click.echo(
        f"Imported {summary.curriculum_rows} curriculum rows, {summary.standards} standards "
        f"({summary.grades} grades, {summary.subjects} subjects)"
    )

def register_commands(app):
    for command in (init_db_command, cleanup_orphans_command,
                    export_snapshot_command, import_snapshot_command):
        app.cli.add_command(command)
