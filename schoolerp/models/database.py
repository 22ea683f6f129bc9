"""
Database initialization and connection utilities
"""

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

db = SQLAlchemy()


def init_db() -> None:
    """Create tables and seed the default roles and super admin"""
    db.create_all()
    seed_defaults()


def seed_defaults() -> None:
    """Insert default roles and the bootstrap super admin if they are missing"""
    from schoolerp.models.user import Role, RolePermission, User
    from schoolerp.utils.permissions import DEFAULT_ROLES, SUPER_ADMIN_ROLE

    for name, (description, permissions) in DEFAULT_ROLES.items():
        role = Role.query.filter_by(name=name).first()
        if role is None:
            role = Role(name=name, description=description, is_system=True)
            role.permissions = [RolePermission(permission=p) for p in permissions]
            db.session.add(role)

    email = (current_app.config.get('SUPER_ADMIN_EMAIL') or '').strip().lower()
    password = current_app.config.get('SUPER_ADMIN_PASSWORD')
    if email and password and not User.query.filter_by(email=email).first():
        admin = User(email=email, first_name='System', last_name='Administrator',
                     is_super_admin=True)
        admin.set_password(password)
        super_role = Role.query.filter_by(name=SUPER_ADMIN_ROLE).first()
        if super_role is not None:
            admin.roles.append(super_role)
        db.session.add(admin)

    db.session.commit()


def check_connection() -> bool:
    """Run a trivial query against the database"""
    try:
        db.session.execute(text('SELECT 1'))
        return True
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Database check failed: {e}")
        return False
