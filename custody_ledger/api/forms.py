from flask_wtf import FlaskForm
from wtforms import BooleanField, IntegerField, StringField
from wtforms.validators import (
    DataRequired,
    Length,
    NumberRange,
    Optional,
    StopValidation,
    ValidationError,
)


class JSONType:
    """Stop validation unless the JSON value has one of ``types``.

    WTForms coerces whatever the body holds, so ``12345`` would reach
    ``Length`` and ``true`` would become ``1`` in an IntegerField.
    """

    def __init__(self, types, message):
        self.types = types
        self.message = message

    def __call__(self, form, field):
        if not field.raw_data:
            return
        value = field.raw_data[0]
        if len(field.raw_data) > 1 or isinstance(value, bool) or not isinstance(value, self.types):
            raise StopValidation(self.message)


def text(message='Must be a string'):
    return JSONType(str, message)


def whole_number(message):
    # Strings like "10" are still parsed by IntegerField
    return JSONType((int, str), message)


class ProductForm(FlaskForm):
    """Request body for product registration.

    Descriptive strings are accepted as-is, including empty ones; the
    ledger leaves their validation to the client.
    """
    name = StringField('Name', validators=[text(), Optional(), Length(max=200)])
    batch_number = StringField('Batch Number', validators=[
        text(), Optional(), Length(max=100)
    ])
    manufacturer_name = StringField(
        'Manufacturer Name',
        validators=[text(), Optional(), Length(max=200)]
    )
    quantity = IntegerField('Quantity', validators=[
        whole_number('Quantity must be a whole number'),
        NumberRange(min=0, message="Quantity must be 0 or greater")
    ])
    mfg_date = IntegerField('Manufacturing Date', validators=[
        whole_number('Manufacturing date must be a whole number'),
        NumberRange(min=0, message="Manufacturing date must be a millisecond timestamp")
    ])
    expiry_date = IntegerField('Expiry Date', validators=[
        whole_number('Expiry date must be a whole number'),
        NumberRange(min=0, message="Expiry date must be a millisecond timestamp")
    ])
    category = StringField('Category', validators=[text(), Optional(), Length(max=100)])

    def text(self, name):
        return getattr(self, name).data or ''


class TransferForm(FlaskForm):
    """Request body for a custody transfer."""
    to = StringField('Recipient', validators=[
        text('Recipient identity must be a string'),
        DataRequired(message='Recipient identity is required'),
        Length(max=128)
    ])
    location = StringField('Location', validators=[
        text('Location must be a string'),
        Optional(),
        Length(max=500)
    ])

    def recipient(self):
        return self.to.data.strip()


class AuthorizationForm(FlaskForm):
    """Request body for granting or revoking manufacturer authorization."""
    authorized = BooleanField('Authorized')

    def validate_authorized(self, field):
        # A missing flag would silently read as False and revoke
        if not field.raw_data:
            raise ValidationError('authorized is required')
        # BooleanField reads "no" or "0" as True
        if not isinstance(field.raw_data[0], bool):
            raise ValidationError('authorized must be true or false')


def form_errors(form):
    return {name: list(messages) for name, messages in form.errors.items()}
