"""
Routes package initialization
"""

from schoolerp.routes.auth_routes import auth_bp
from schoolerp.routes.tenant_routes import tenant_bp
from schoolerp.routes.people_routes import people_bp
from schoolerp.routes.admission_routes import admission_bp
from schoolerp.routes.leave_routes import leave_bp
from schoolerp.routes.attendance_routes import attendance_bp
from schoolerp.routes.examination_routes import examination_bp
from schoolerp.routes.salary_routes import salary_bp
from schoolerp.routes.courtesy_call_routes import courtesy_call_bp
from schoolerp.routes.communication_routes import communication_bp
from schoolerp.routes.health_routes import health_bp

__all__ = [
    'auth_bp', 'tenant_bp', 'people_bp', 'admission_bp', 'leave_bp', 'attendance_bp',
    'examination_bp', 'salary_bp', 'courtesy_call_bp', 'communication_bp', 'health_bp'
]
