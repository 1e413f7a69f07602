"""Main routes"""
from flask import render_template, redirect, url_for
from flask_login import login_required, current_user
from mfi.main import main_bp
from mfi.services.dashboard import portfolio_summary
from mfi.services.loans import LoanManager
from mfi.services.audit import AuditLog
from mfi.utils.helpers import get_repository

@main_bp.route('/')
@main_bp.route('/dashboard')
@login_required
def dashboard():
    """Portfolio dashboard"""
    repo = get_repository()
    stats = portfolio_summary(repo)

    manager = LoanManager(repo)
    recent_loans = manager.list()[:5]
    overdue_loans = manager.list(status='overdue')[:10]
    recent_activity = AuditLog(repo).list(limit=10)

    return render_template('main/dashboard.html',
                         title='Dashboard',
                         stats=stats,
                         recent_loans=recent_loans,
                         overdue_loans=overdue_loans,
                         recent_activity=recent_activity)

@main_bp.route('/index')
def index():
    """Redirect to dashboard or login"""
    if current_user.is_authenticated:
        return redirect(url_for('main.dashboard'))
    return redirect(url_for('auth.login'))
