from flask import Blueprint

# Blueprint для модерации отзывов
admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


from .views import *
