"""
Shared fixtures: a fresh in-memory database per test, two branches and
helpers for logged-in users
"""

from datetime import date
from types import SimpleNamespace

import pytest

from schoolerp import create_app
from schoolerp.models import db, AcademicSession, Branch, Role, Staff, StaffType, Student, User
from schoolerp.services import AuthService


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        main = Branch(name='Main Campus', code='MAIN')
        north = Branch(name='North Campus', code='NORTH')
        db.session.add_all([main, north])
        db.session.flush()
        db.session.add(AcademicSession(branch_id=main.id, name='2025-26', start_date=date(2025, 4, 1),
                                       end_date=date(2026, 3, 31), is_current=True))
        db.session.commit()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def branches(app):
    with app.app_context():
        return {b.code: b.id for b in Branch.query.all()}


def _headers(user):
    return {'Authorization': f'Bearer {AuthService.issue_token(user)}'}


@pytest.fixture
def make_user(app):
    """Create a user with the given roles, optionally with a staff profile"""
    counter = {'n': 0}

    def _make(*roles, branch='MAIN', staff_type=None, super_admin=False):
        counter['n'] += 1
        n = counter['n']
        with app.app_context():
            branch_row = Branch.query.filter_by(code=branch).one()
            user = User(email=f'user{n}@school.test', first_name='Test', last_name=f'User{n}',
                        branch_id=None if super_admin else branch_row.id, is_super_admin=super_admin)
            user.set_password('Password@123')
            user.roles = Role.query.filter(Role.name.in_(roles)).all()
            db.session.add(user)
            db.session.flush()

            staff_id = None
            if staff_type:
                staff = Staff(branch_id=branch_row.id, user_id=user.id, staff_type=staff_type,
                              employee_code=f'EMP{n:03d}', first_name='Test', last_name=f'User{n}')
                db.session.add(staff)
                db.session.flush()
                staff_id = staff.id
            db.session.commit()
            return SimpleNamespace(id=user.id, email=user.email, staff_id=staff_id,
                                   branch_id=user.branch_id, headers=_headers(user))

    return _make


@pytest.fixture
def admin(app):
    """The seeded super admin"""
    with app.app_context():
        user = User.query.filter_by(email=app.config['SUPER_ADMIN_EMAIL']).one()
        return SimpleNamespace(id=user.id, email=user.email, staff_id=None, branch_id=None,
                               headers=_headers(user))


@pytest.fixture
def principal(make_user):
    return make_user('principal', staff_type=StaffType.EMPLOYEE)


@pytest.fixture
def teacher(make_user):
    return make_user('teacher', staff_type=StaffType.TEACHER)


@pytest.fixture
def make_student(app):
    counter = {'n': 0}

    def _make(branch='MAIN', class_name='5', section='A', first_name='Student'):
        counter['n'] += 1
        with app.app_context():
            branch_row = Branch.query.filter_by(code=branch).one()
            student = Student(branch_id=branch_row.id, admission_number=f'T{counter["n"]:04d}',
                              first_name=first_name, last_name=f'No{counter["n"]}',
                              class_name=class_name, section=section, guardian_phone='9876543210')
            db.session.add(student)
            db.session.commit()
            return student.id

    return _make


@pytest.fixture
def lead_data():
    return {
        'first_name': 'Aarav',
        'last_name': 'Sharma',
        'applied_class': '5',
        'parent_name': 'Rohit Sharma',
        'parent_phone': '9876543210',
        'parent_email': 'rohit@example.com',
    }
