from flask import jsonify
from flask_login import current_user, login_required
from functools import wraps
import logging

from ..models.user import User

logger = logging.getLogger(__name__)


def admin_required(f):
    """Декоратор, разрешающий доступ только админам (User)."""
    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        logger.debug("Admin route accessed, user: %s", current_user.__class__.__name__)
        if not isinstance(current_user, User):
            logger.debug("User is not admin, refusing")
            return jsonify(ok=False, error='forbidden', category='input',
                           message='Moderation is restricted to administrators.'), 403
        return f(*args, **kwargs)
    return decorated_function
