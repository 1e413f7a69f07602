"""Partner forms"""
from flask_wtf import FlaskForm
from wtforms import StringField, SelectField, SubmitField
from wtforms.validators import DataRequired, Email, Optional, Length

class PartnerForm(FlaskForm):
    """Funding partner form"""
    name = StringField('Name', validators=[DataRequired(), Length(max=200)])
    partner_type = SelectField('Type', choices=[
        ('external', 'External'),
        ('internal', 'Internal')
    ], default='external')
    country = StringField('Country', validators=[Optional(), Length(max=100)])
    email = StringField('Email', validators=[Optional(), Email(), Length(max=120)])
    status = SelectField('Status', choices=[
        ('active', 'Active'),
        ('suspended', 'Suspended')
    ], default='active')
    submit = SubmitField('Save Partner')
