"""Loan management routes"""
from decimal import InvalidOperation
from flask import render_template, redirect, url_for, flash, request, jsonify, abort
from flask_login import login_required
from mfi.loans import loans_bp
from mfi.loans.forms import LoanForm, LoanStatusForm, LoanPaymentForm
from mfi.models import LOAN_STATUSES, CURRENCIES, LOAN_ACTIVE, LOAN_PENDING
from mfi.services.errors import MFIError, NotFound
from mfi.services.ledger import CapitalLedger
from mfi.services.loans import LoanManager
from mfi.services.payments import PaymentProcessor
from mfi.services.registries import MemberRegistry, PartnerRegistry
from mfi.utils.decorators import admin_required
from mfi.utils.helpers import get_repository, current_actor

def _loan_or_404(manager, id):
    try:
        return manager.get(id)
    except NotFound:
        abort(404)

@loans_bp.route('/')
@login_required
def list_loans():
    """List all loans"""
    search = request.args.get('search', '', type=str)
    status = request.args.get('status', '', type=str)
    currency = request.args.get('currency', '', type=str)

    loans = LoanManager(get_repository()).list(
        status=status or None,
        currency=currency or None,
        search=search or None,
    )

    return render_template('loans/list.html',
                         title='Loans',
                         loans=loans,
                         search=search,
                         status=status,
                         currency=currency,
                         statuses=LOAN_STATUSES)

@loans_bp.route('/add', methods=['GET', 'POST'])
@login_required
def add_loan():
    """Add new loan"""
    repo = get_repository()
    form = LoanForm()

    members = MemberRegistry(repo).list()
    partners = PartnerRegistry(repo).list(status='active')
    form.member_id.choices = [(0, 'Select Member')] + [(m.id, m.full_name) for m in members]
    form.partner_id.choices = [(0, 'No partner')] + [(p.id, p.name) for p in partners]

    ledger = CapitalLedger(repo)
    available = {currency: ledger.available(currency) for currency in CURRENCIES}

    if form.validate_on_submit():
        if form.member_id.data == 0:
            flash('Please select a member!', 'danger')
            return render_template('loans/add.html', title='Add Loan', form=form, available=available)

        try:
            loan = LoanManager(repo).create(
                member_id=form.member_id.data,
                amount=form.amount.data,
                currency=form.currency.data,
                duration_months=form.duration_months.data,
                partner_id=form.partner_id.data or None,
                status=LOAN_ACTIVE if form.disburse_now.data else LOAN_PENDING,
                actor=current_actor(),
            )
        except MFIError as e:
            flash(str(e), 'danger')
            return render_template('loans/add.html', title='Add Loan', form=form, available=available)

        flash(f'Loan {loan.id} created successfully!', 'success')
        return redirect(url_for('loans.view_loan', id=loan.id))

    return render_template('loans/add.html', title='Add Loan', form=form, available=available)

@loans_bp.route('/<int:id>')
@login_required
def view_loan(id):
    """View loan details"""
    repo = get_repository()
    loan = _loan_or_404(LoanManager(repo), id)
    payments = PaymentProcessor(repo).list(loan_id=loan.id)

    return render_template('loans/view.html',
                         title=f'Loan {loan.id}',
                         loan=loan,
                         payments=payments,
                         status_form=LoanStatusForm())

@loans_bp.route('/<int:id>/status', methods=['POST'])
@login_required
@admin_required
def update_status(id):
    """Move a loan to a new status"""
    manager = LoanManager(get_repository())
    _loan_or_404(manager, id)
    form = LoanStatusForm()

    if form.validate_on_submit():
        try:
            loan = manager.update_status(id, form.status.data, actor=current_actor())
        except MFIError as e:
            flash(str(e), 'danger')
        else:
            flash(f'Loan status changed to {loan.status}.', 'success')
    else:
        flash('Please choose a valid status.', 'danger')

    return redirect(url_for('loans.view_loan', id=id))

@loans_bp.route('/<int:id>/payment', methods=['GET', 'POST'])
@login_required
def add_payment(id):
    """Record a loan payment"""
    repo = get_repository()
    loan = _loan_or_404(LoanManager(repo), id)

    if not loan.accepts_payments:
        flash('Cannot add payment for this loan! Loan must be active or overdue.', 'warning')
        return redirect(url_for('loans.view_loan', id=id))

    form = LoanPaymentForm()

    if form.validate_on_submit():
        try:
            payment = PaymentProcessor(repo).apply(
                loan.id,
                form.amount.data,
                agent_name=current_actor(),
                method=form.method.data,
                actor=current_actor(),
            )
        except MFIError as e:
            flash(str(e), 'danger')
            return render_template('loans/payment.html', title=f'Add Payment: Loan {loan.id}', form=form, loan=loan)

        flash(f'Payment of {payment.amount} {payment.currency} recorded successfully!', 'success')
        return redirect(url_for('loans.payment_receipt', payment_id=payment.id))

    return render_template('loans/payment.html', title=f'Add Payment: Loan {loan.id}', form=form, loan=loan)

@loans_bp.route('/payments/<int:payment_id>/receipt')
@login_required
def payment_receipt(payment_id):
    """Printable receipt for a payment"""
    repo = get_repository()
    try:
        payment = PaymentProcessor(repo).get(payment_id)
    except NotFound:
        abort(404)
    loan = LoanManager(repo).get(payment.loan_id)
    return render_template('loans/receipt.html', title='Payment Receipt', payment=payment, loan=loan)

@loans_bp.route('/api/preview')
@login_required
def preview_loan():
    """Quote interest, fees and total due with the current settings"""
    try:
        amount = request.args.get('amount', type=str)
        duration = request.args.get('duration_months', type=int)
        if not amount or not duration:
            raise ValueError
        quote = LoanManager(get_repository()).preview(amount, duration)
    except (ValueError, InvalidOperation):
        return jsonify({'success': False, 'error': 'amount and duration_months are required numbers'}), 400

    return jsonify({
        'success': True,
        'quote': {field: str(value) for field, value in quote._asdict().items()},
    })
