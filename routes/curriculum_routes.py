"""
Curriculum content routes: rows, standards, lookups and the school year
"""
import logging
from flask import Blueprint, jsonify, request

from routes import get_store, json_body, no_cache
from utils.patches import CurriculumRowPatch, SchoolYearPatch, StandardPatch

curriculum = Blueprint('curriculum', __name__, url_prefix='/api')
logger = logging.getLogger(__name__)

@curriculum.route('/curriculum/<grade>/<subject>', methods=['GET'])
def get_curriculum(grade, subject):
    """Rows for one grade and subject, optionally narrowed to a table"""
    rows = get_store().get_curriculum_rows(grade, subject, request.args.get('tableName'))
    return no_cache(jsonify([row.to_dict() for row in rows]))

@curriculum.route('/curriculum/all', methods=['GET'])
def get_all_curriculum():
    rows = get_store().get_all_curriculum_rows()
    return jsonify([row.to_dict() for row in rows])

@curriculum.route('/curriculum', methods=['POST'])
def create_curriculum_row():
    row = get_store().create_curriculum_row(CurriculumRowPatch.from_dict(json_body()))
    return jsonify(row.to_dict()), 201

@curriculum.route('/curriculum/<int:row_id>', methods=['PATCH'])
def update_curriculum_row(row_id):
    row = get_store().update_curriculum_row(row_id, CurriculumRowPatch.from_dict(json_body()))
    return jsonify(row.to_dict())

@curriculum.route('/curriculum/<int:row_id>', methods=['DELETE'])
def delete_curriculum_row(row_id):
    get_store().delete_curriculum_row(row_id)
    return '', 204

@curriculum.route('/standards', methods=['GET'])
def list_standards():
    return jsonify([standard.to_dict() for standard in get_store().get_all_standards()])

@curriculum.route('/standards', methods=['POST'])
def create_standard():
    standard = get_store().create_standard(StandardPatch.from_dict(json_body()))
    return jsonify(standard.to_dict()), 201

@curriculum.route('/standards/category/<category>', methods=['GET'])
def list_standards_by_category(category):
    standards = get_store().get_standards_by_category(category)
    return jsonify([standard.to_dict() for standard in standards])

@curriculum.route('/standards/categories', methods=['GET'])
def list_standard_categories():
    return jsonify(get_store().get_standard_categories())

@curriculum.route('/grades', methods=['GET'])
def list_grades():
    return jsonify(get_store().get_grades())

@curriculum.route('/subjects', methods=['GET'])
def list_subjects():
    return jsonify(get_store().get_subjects())

@curriculum.route('/subjects/<grade>', methods=['GET'])
def list_subjects_by_grade(grade):
    return jsonify(get_store().get_subjects_by_grade(grade))

@curriculum.route('/search', methods=['GET'])
def search_curriculum():
    query = request.args.get('q', '')
    rows = get_store().search_curriculum_rows(query)
    logger.debug(f"Search '{query}' matched {len(rows)} rows")
    return jsonify([row.to_dict() for row in rows])

@curriculum.route('/stats', methods=['GET'])
def database_stats():
    return jsonify(get_store().get_database_stats())

@curriculum.route('/school-year', methods=['GET'])
def get_school_year():
    return no_cache(jsonify(get_store().get_school_year().to_dict()))

@curriculum.route('/school-year', methods=['PATCH'])
def update_school_year():
    patch = SchoolYearPatch.from_dict(json_body()).require('year')
    return jsonify(get_store().update_school_year(patch.year).to_dict())
