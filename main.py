"""
Main application entry point
"""

import os
import sys

from schoolerp import create_app
from schoolerp.models.database import check_connection
from schoolerp.utils import log_info, log_error


def main():
    """Main application entry point"""
    app = create_app()

    with app.app_context():
        if not check_connection():
            log_error("Database connection unavailable; check DATABASE_URL or MYSQL_* settings")
            return False
        log_info("Database connection available")

    debug_mode = app.config.get('DEBUG', False)
    port = int(os.environ.get('PORT', 5000))
    app.run(host='0.0.0.0', port=port, debug=debug_mode)
    return True


if __name__ == '__main__':
    if not main():
        sys.exit(1)
