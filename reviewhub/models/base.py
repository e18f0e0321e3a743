import re

from sqlalchemy.dialects import mysql
from unidecode import unidecode

from ..extensions import db

# DATETIME(6) on MySQL: ordering of reviews relies on sub-second timestamps
PreciseDateTime = db.DateTime().with_variant(mysql.DATETIME(fsp=6), 'mysql')


class BaseModel(db.Model):
    __abstract__ = True
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    @staticmethod
    def slugify(value):
        """
        Slug for catalog entries:
        - transliterate with unidecode
        - lower-case, non-alphanumerics become dashes
        - trim dashes
        """
        value = unidecode(value)
        value = re.sub(r'[^a-zA-Z0-9]+', '-', value.lower())
        value = value.strip('-')
        return value
