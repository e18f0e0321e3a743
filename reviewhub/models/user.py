from datetime import datetime
from ..extensions import db
from .base import BaseModel
from flask_login import UserMixin
import bcrypt


class User(BaseModel, UserMixin):
    """Back-office account allowed to moderate reviews."""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    username = db.Column(db.String(255), unique=True, nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def check_password(self, password):
        return bcrypt.checkpw(password.encode('utf-8'), self.password.encode('utf-8'))


def hash_password(password):
    """Хеширует пароль с помощью bcrypt."""
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def addUser(username, email, password):
    user = User(username=username, email=email, password=hash_password(password))
    db.session.add(user)
    db.session.commit()
    return user
