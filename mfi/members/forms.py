"""Member forms"""
from flask_wtf import FlaskForm
from wtforms import StringField, SelectField, SubmitField
from wtforms.validators import DataRequired, Optional, Length

class MemberForm(FlaskForm):
    """Member registration form"""
    first_name = StringField('First Name', validators=[DataRequired(), Length(max=100)])
    last_name = StringField('Last Name', validators=[DataRequired(), Length(max=100)])
    gender = SelectField('Gender', choices=[
        ('M', 'Male'),
        ('F', 'Female')
    ], default='M')
    phone = StringField('Phone', validators=[Optional(), Length(max=30)])
    address = StringField('Address', validators=[Optional(), Length(max=255)])
    profession = StringField('Profession', validators=[Optional(), Length(max=100)])
    group_name = StringField('Group', validators=[Optional(), Length(max=100)])
    submit = SubmitField('Save Member')
