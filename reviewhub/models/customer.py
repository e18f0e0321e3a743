from datetime import datetime
from flask_login import UserMixin

from ..extensions import db
from .base import BaseModel


class Customer(BaseModel, UserMixin):
    """Review author. Accounts and sessions are issued by the site's auth service;
    this table only mirrors the identity the session carries."""
    __tablename__ = 'customers'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    reviews = db.relationship('Review', backref='author', lazy='dynamic')
