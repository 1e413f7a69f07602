"""Settings forms"""
from flask_wtf import FlaskForm
from wtforms import StringField, SelectField, DecimalField, TextAreaField, BooleanField, PasswordField, SubmitField
from wtforms.validators import DataRequired, InputRequired, Optional, NumberRange, Length, EqualTo

class SystemSettingsForm(FlaskForm):
    """System settings form"""
    institution_name = StringField('Institution Name', validators=[DataRequired(), Length(max=200)])

    # Capital
    capital_cdf = DecimalField('Capital Ceiling (CDF)', validators=[InputRequired(), NumberRange(min=0)], places=2)
    capital_usd = DecimalField('Capital Ceiling (USD)', validators=[InputRequired(), NumberRange(min=0)], places=2)

    # Rates
    interest_rate = DecimalField('Interest Rate (% per month)', validators=[InputRequired(), NumberRange(min=0, max=100)], places=2)
    application_fee_percent = DecimalField('Application Fee (%)', validators=[InputRequired(), NumberRange(min=0, max=100)], places=2)
    insurance_fee_percent = DecimalField('Insurance (%)', validators=[InputRequired(), NumberRange(min=0, max=100)], places=2)
    savings_percent = DecimalField('Compulsory Savings (%)', validators=[InputRequired(), NumberRange(min=0, max=100)], places=2)
    penalty_rate = DecimalField('Late Penalty (%)', validators=[InputRequired(), NumberRange(min=0, max=100)], places=2)

    # Welcome screen
    welcome_title = StringField('Welcome Title', validators=[Optional(), Length(max=200)])
    welcome_subtitle = StringField('Welcome Subtitle', validators=[Optional(), Length(max=255)])
    welcome_description = TextAreaField('Welcome Description', validators=[Optional()])

    submit = SubmitField('Save Settings')

class UserForm(FlaskForm):
    """User creation form"""
    username = StringField('Username', validators=[DataRequired(), Length(max=80)])
    name = StringField('Full Name', validators=[DataRequired(), Length(max=200)])
    password = PasswordField('Password', validators=[DataRequired(), Length(min=4)])
    confirm_password = PasswordField('Confirm Password', validators=[
        DataRequired(),
        EqualTo('password', message='Passwords must match')
    ])
    role = SelectField('Role', choices=[
        ('agent', 'Agent'),
        ('admin', 'Administrator')
    ], default='agent')
    is_active = BooleanField('Active', default=True)
    submit = SubmitField('Save User')

class UserEditForm(UserForm):
    """User edit form; the password is only changed when filled in"""
    password = PasswordField('New Password', validators=[Optional(), Length(min=4)])
    confirm_password = PasswordField('Confirm Password', validators=[
        EqualTo('password', message='Passwords must match')
    ])
