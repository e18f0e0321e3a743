from flask_wtf import FlaskForm
from wtforms import StringField, TextAreaField
from wtforms.fields.numeric import IntegerField
from wtforms.fields.simple import HiddenField
from wtforms.fields.choices import SelectField
from wtforms.validators import AnyOf, DataRequired, InputRequired, Length, NumberRange, Optional, StopValidation

from ..models.review import ReviewStatus
from ..services.errors import ReviewValidationError
from ..services.submission import MAX_BODY_LENGTH, MIN_BODY_LENGTH

STATUS_VALUES = [s.value for s in ReviewStatus]
RATING_MESSAGE = 'Please provide a rating between 1 and 5 stars.'


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _whole_stars(form, field):
    """Reject JSON booleans and fractional numbers before int() coercion."""
    raw = field.raw_data[0] if field.raw_data else None
    if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
        raise StopValidation(RATING_MESSAGE)


class ReviewForm(FlaskForm):
    rating = IntegerField('Rating', validators=[
        _whole_stars,
        InputRequired(message=RATING_MESSAGE),
        NumberRange(min=1, max=5, message=RATING_MESSAGE),
    ])
    body = TextAreaField('Review', filters=[_strip], validators=[
        DataRequired(message='Please write your review.'),
        Length(min=MIN_BODY_LENGTH, max=MAX_BODY_LENGTH,
               message=f'Review must be between {MIN_BODY_LENGTH} and {MAX_BODY_LENGTH} characters long.'),
    ])
    # Turnstile posts its token as "cf-turnstile-response"; the view copies it here
    captcha_token = StringField('Security verification', validators=[
        DataRequired(message='Please complete the security verification.'),
    ])


class ModerationForm(FlaskForm):
    status = SelectField('Status', choices=[(v, v.title()) for v in STATUS_VALUES],
                         validators=[DataRequired()])
    notes = TextAreaField('Admin notes', filters=[_strip], validators=[Optional(), Length(max=2000)])
    # Статус, который модератор видел при загрузке карточки
    expected_status = HiddenField('expected_status', validators=[Optional(), AnyOf(STATUS_VALUES)])


def form_error(form):
    """First failing field of a form as a ``ReviewValidationError``."""
    for field_name, messages in form.errors.items():
        if messages:
            message = messages[0] if isinstance(messages[0], str) else str(messages[0])
            return ReviewValidationError(field_name, message)
    return ReviewValidationError('form', 'Invalid submission.')
