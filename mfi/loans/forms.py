"""Loan forms"""
from flask_wtf import FlaskForm
from wtforms import SelectField, DecimalField, IntegerField, BooleanField, SubmitField
from wtforms.validators import DataRequired, NumberRange

class LoanForm(FlaskForm):
    """Loan application form"""
    member_id = SelectField('Member', coerce=int, choices=[], validators=[DataRequired()])
    partner_id = SelectField('Funding Partner', coerce=int, choices=[])
    amount = DecimalField('Loan Amount', validators=[DataRequired(), NumberRange(min=0.01)], places=2)
    currency = SelectField('Currency', choices=[
        ('CDF', 'CDF'),
        ('USD', 'USD')
    ], default='CDF')
    duration_months = IntegerField('Duration (Months)', validators=[DataRequired(), NumberRange(min=1, max=360)], default=3)
    disburse_now = BooleanField('Disburse immediately (skip approval)')
    submit = SubmitField('Save Loan')

class LoanStatusForm(FlaskForm):
    """Loan status change form"""
    status = SelectField('New Status', choices=[
        ('approved', 'Approve'),
        ('rejected', 'Reject'),
        ('active', 'Disburse / Reactivate'),
        ('overdue', 'Mark Overdue'),
        ('completed', 'Close')
    ], validators=[DataRequired()])
    submit = SubmitField('Update Status')

class LoanPaymentForm(FlaskForm):
    """Loan repayment form"""
    amount = DecimalField('Payment Amount', validators=[DataRequired(), NumberRange(min=0.01)], places=2)
    method = SelectField('Payment Method', choices=[
        ('cash', 'Cash'),
        ('mobile_money', 'Mobile Money'),
        ('bank', 'Bank')
    ], default='cash')
    submit = SubmitField('Record Payment')
