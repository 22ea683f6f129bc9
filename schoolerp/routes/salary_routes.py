"""
Payroll routes
"""

from flask import Blueprint, g, jsonify, request

from schoolerp.schemas import load
from schoolerp.schemas.salary import (
    SalaryStructureSchema, StaffSalarySchema, IncrementSchema, SalaryPaymentSchema,
    SalaryPaymentStatusSchema
)
from schoolerp.services import SalaryService
from schoolerp.utils import create_response
from schoolerp.utils.decorators import permission_required
from schoolerp.utils.helpers import parse_int
from schoolerp.utils.permissions import Permission

salary_bp = Blueprint('salary', __name__)


# Structures

@salary_bp.route('/structures', methods=['GET'])
@permission_required(Permission.VIEW_SALARY, Permission.MANAGE_SALARY_STRUCTURES)
def list_structures():
    structures = SalaryService.list_structures(g.current_user,
                                               parse_int(request.args.get('branch_id'), 'branch_id'))
    return jsonify(create_response(True, "Salary structures retrieved", structures))


@salary_bp.route('/structures', methods=['POST'])
@permission_required(Permission.MANAGE_SALARY_STRUCTURES)
def create_structure():
    data = load(SalaryStructureSchema(), request.get_json(silent=True))
    structure = SalaryService.create_structure(data, g.current_user)
    return jsonify(create_response(True, "Salary structure created", structure.to_dict())), 201


@salary_bp.route('/structures/<int:structure_id>', methods=['PUT'])
@permission_required(Permission.MANAGE_SALARY_STRUCTURES)
def update_structure(structure_id):
    data = load(SalaryStructureSchema(), request.get_json(silent=True), partial=True)
    structure = SalaryService.update_structure(structure_id, data, g.current_user)
    return jsonify(create_response(True, "Salary structure updated", structure.to_dict()))


# Staff salaries

@salary_bp.route('/staff', methods=['POST'])
@permission_required(Permission.MANAGE_STAFF_SALARIES)
def assign_salary():
    data = load(StaffSalarySchema(), request.get_json(silent=True))
    salary = SalaryService.assign_salary(data, g.current_user)
    return jsonify(create_response(True, "Salary assigned", salary.to_dict())), 201


@salary_bp.route('/staff/<int:staff_id>', methods=['GET'])
@permission_required(Permission.VIEW_SALARY, Permission.MANAGE_STAFF_SALARIES)
def get_staff_salary(staff_id):
    salary = SalaryService.get_active_salary(staff_id, g.current_user)
    return jsonify(create_response(True, "Salary retrieved", salary.to_dict()))


@salary_bp.route('/staff/<int:staff_id>/history', methods=['GET'])
@permission_required(Permission.VIEW_SALARY, Permission.MANAGE_STAFF_SALARIES)
def salary_history(staff_id):
    return jsonify(create_response(True, "Salary history retrieved",
                                   SalaryService.salary_history(staff_id, g.current_user)))


@salary_bp.route('/staff/<int:staff_id>/increment', methods=['POST'])
@permission_required(Permission.MANAGE_STAFF_SALARIES)
def apply_increment(staff_id):
    data = load(IncrementSchema(), request.get_json(silent=True))
    salary = SalaryService.apply_increment(staff_id, data, g.current_user)
    return jsonify(create_response(True, "Increment applied", salary.to_dict())), 201


# Payments

@salary_bp.route('/payments/preview', methods=['POST'])
@permission_required(Permission.PROCESS_SALARY)
def preview_payment():
    data = load(SalaryPaymentSchema(), request.get_json(silent=True))
    return jsonify(create_response(True, "Salary calculated", SalaryService.preview_payment(data, g.current_user)))


@salary_bp.route('/payments', methods=['POST'])
@permission_required(Permission.PROCESS_SALARY)
def create_payment():
    data = load(SalaryPaymentSchema(), request.get_json(silent=True))
    payment = SalaryService.create_payment(data, g.current_user)
    return jsonify(create_response(True, "Salary payment created", payment.to_dict())), 201


@salary_bp.route('/payments', methods=['GET'])
@permission_required(Permission.VIEW_SALARY, Permission.PROCESS_SALARY)
def list_payments():
    filters = {
        'branch_id': parse_int(request.args.get('branch_id'), 'branch_id'),
        'staff_id': parse_int(request.args.get('staff_id'), 'staff_id'),
        'month': parse_int(request.args.get('month'), 'month'),
        'year': parse_int(request.args.get('year'), 'year'),
        'status': request.args.get('status'),
    }
    return jsonify(create_response(True, "Salary payments retrieved",
                                   SalaryService.list_payments(g.current_user, filters)))


@salary_bp.route('/payments/<int:payment_id>/status', methods=['PUT'])
@permission_required(Permission.PROCESS_SALARY)
def update_payment_status(payment_id):
    data = load(SalaryPaymentStatusSchema(), request.get_json(silent=True))
    payment = SalaryService.update_payment_status(payment_id, data, g.current_user)
    return jsonify(create_response(True, f"Salary payment {payment.status.lower()}", payment.to_dict()))
