"""
Grade scale, assessment schema, score and result routes
"""

from flask import Blueprint, g, jsonify, request

from schoolerp.schemas import load
from schoolerp.schemas.examination import (
    GradeScaleSchema, GradeRangeSchema, MarksSchemeSchema, ScoreEntrySchema, BulkScoreSchema
)
from schoolerp.services import ExaminationService
from schoolerp.utils import create_response
from schoolerp.utils.decorators import permission_required
from schoolerp.utils.helpers import parse_int
from schoolerp.utils.permissions import Permission

examination_bp = Blueprint('examinations', __name__)

VIEW = Permission.VIEW_EXAMINATIONS
MANAGE = Permission.MANAGE_EXAMINATIONS


# Grade scales

@examination_bp.route('/grade-scales', methods=['GET'])
@permission_required(VIEW, MANAGE)
def list_grade_scales():
    scales = ExaminationService.list_grade_scales(g.current_user,
                                                  parse_int(request.args.get('branch_id'), 'branch_id'))
    return jsonify(create_response(True, "Grade scales retrieved", scales))


@examination_bp.route('/grade-scales', methods=['POST'])
@permission_required(MANAGE)
def create_grade_scale():
    data = load(GradeScaleSchema(), request.get_json(silent=True))
    scale = ExaminationService.create_grade_scale(data, g.current_user)
    return jsonify(create_response(True, "Grade scale created", scale.to_dict())), 201


@examination_bp.route('/grade-scales/<int:scale_id>', methods=['GET'])
@permission_required(VIEW, MANAGE)
def get_grade_scale(scale_id):
    scale = ExaminationService.get_grade_scale(scale_id, g.current_user)
    return jsonify(create_response(True, "Grade scale retrieved", scale.to_dict()))


@examination_bp.route('/grade-scales/<int:scale_id>', methods=['PUT'])
@permission_required(MANAGE)
def update_grade_scale(scale_id):
    data = load(GradeScaleSchema(), request.get_json(silent=True), partial=True)
    scale = ExaminationService.update_grade_scale(scale_id, data, g.current_user)
    return jsonify(create_response(True, "Grade scale updated", scale.to_dict()))


@examination_bp.route('/grade-scales/<int:scale_id>', methods=['DELETE'])
@permission_required(MANAGE)
def delete_grade_scale(scale_id):
    ExaminationService.delete_grade_scale(scale_id, g.current_user)
    return jsonify(create_response(True, "Grade scale deleted"))


@examination_bp.route('/grade-scales/<int:scale_id>/ranges', methods=['POST'])
@permission_required(MANAGE)
def add_grade_range(scale_id):
    data = load(GradeRangeSchema(), request.get_json(silent=True))
    grade_range = ExaminationService.add_grade_range(scale_id, data, g.current_user)
    return jsonify(create_response(True, "Grade range added", grade_range.to_dict())), 201


@examination_bp.route('/grade-scales/<int:scale_id>/ranges/<int:range_id>', methods=['DELETE'])
@permission_required(MANAGE)
def remove_grade_range(scale_id, range_id):
    ExaminationService.remove_grade_range(scale_id, range_id, g.current_user)
    return jsonify(create_response(True, "Grade range removed"))


# Assessment schemas

@examination_bp.route('/schemas', methods=['GET'])
@permission_required(VIEW, MANAGE)
def list_schemas():
    filters = {
        'branch_id': parse_int(request.args.get('branch_id'), 'branch_id'),
        'class_name': request.args.get('class_name'),
        'subject': request.args.get('subject'),
        'term': request.args.get('term'),
    }
    return jsonify(create_response(True, "Assessment schemas retrieved",
                                   ExaminationService.list_schemas(g.current_user, filters)))


@examination_bp.route('/schemas', methods=['POST'])
@permission_required(MANAGE)
def create_schema():
    data = load(MarksSchemeSchema(), request.get_json(silent=True))
    schema = ExaminationService.create_schema(data, g.current_user)
    return jsonify(create_response(True, "Assessment schema created", schema.to_dict())), 201


@examination_bp.route('/schemas/<int:schema_id>', methods=['GET'])
@permission_required(VIEW, MANAGE)
def get_schema(schema_id):
    schema = ExaminationService.get_schema(schema_id, g.current_user)
    return jsonify(create_response(True, "Assessment schema retrieved", schema.to_dict()))


@examination_bp.route('/schemas/<int:schema_id>/validate', methods=['GET'])
@permission_required(VIEW, MANAGE)
def validate_schema(schema_id):
    result = ExaminationService.validate_schema(schema_id, g.current_user)
    message = "Schema is valid" if result['valid'] else "Schema has problems"
    return jsonify(create_response(True, message, result))


@examination_bp.route('/schemas/<int:schema_id>', methods=['DELETE'])
@permission_required(MANAGE)
def delete_schema(schema_id):
    ExaminationService.delete_schema(schema_id, g.current_user)
    return jsonify(create_response(True, "Assessment schema deleted"))


# Scores and results

@examination_bp.route('/scores', methods=['POST'])
@permission_required(Permission.ENTER_MARKS, MANAGE)
def enter_score():
    data = load(ScoreEntrySchema(), request.get_json(silent=True))
    score = ExaminationService.enter_score(data, g.current_user)
    return jsonify(create_response(True, "Score saved", score.to_dict()))


@examination_bp.route('/scores/bulk', methods=['POST'])
@permission_required(Permission.ENTER_MARKS, MANAGE)
def enter_scores():
    data = load(BulkScoreSchema(), request.get_json(silent=True))
    scores = ExaminationService.enter_scores(data['scores'], g.current_user)
    return jsonify(create_response(True, f"{len(scores)} scores saved", [s.to_dict() for s in scores]))


@examination_bp.route('/schemas/<int:schema_id>/results/<int:student_id>', methods=['GET'])
@permission_required(VIEW, MANAGE)
def student_result(schema_id, student_id):
    result = ExaminationService.student_result(schema_id, student_id, g.current_user)
    return jsonify(create_response(True, "Result calculated", result))


@examination_bp.route('/schemas/<int:schema_id>/results', methods=['GET'])
@permission_required(VIEW, MANAGE)
def class_results(schema_id):
    result = ExaminationService.class_results(schema_id, g.current_user, request.args.get('section'))
    return jsonify(create_response(True, "Class results calculated", result))
