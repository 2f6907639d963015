"""
Whole-database routes: snapshot export/import and orphan cleanup
"""
import json
import logging
from datetime import datetime
from flask import Blueprint, Response, jsonify, request

from extensions import limiter
from routes import get_store
from utils.errors import ValidationError

database_admin = Blueprint('database_admin', __name__, url_prefix='/api')
logger = logging.getLogger(__name__)

@database_admin.route('/export/full-database', methods=['GET'])
def export_full_database():
    """Download the whole dataset as a JSON attachment"""
    data = get_store().export_snapshot()
    filename = f"full-curriculum-database-{datetime.utcnow().date().isoformat()}.json"
    logger.info(f"Exporting snapshot with {data['metadata']['totalCurriculumEntries']} curriculum rows")
    return Response(
        json.dumps(data, indent=2),
        mimetype='application/json',
        headers={'Content-Disposition': f'attachment; filename={filename}'}
    )

@database_admin.route('/import/full-database', methods=['POST'])
@limiter.limit("10 per minute")
def import_full_database():
    """Validate a snapshot, then replace the whole dataset with it"""
    payload = request.get_json(silent=True)
    try:
        summary = get_store().import_snapshot(payload)
    except ValidationError as e:
        logger.warning(f"Rejected snapshot import: {e.message}")
        raise
    return jsonify({
        'message': 'Database imported successfully',
        'summary': summary.to_dict(),
    })

@database_admin.route('/cleanup-orphaned-data', methods=['POST'])
def cleanup_orphaned_data():
    deleted_count = get_store().cleanup_orphaned_rows()
    return jsonify({
        'message': 'Cleanup completed successfully',
        'deletedCount': deleted_count,
    })
