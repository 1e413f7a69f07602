"""Settings routes"""
from flask import render_template, redirect, url_for, flash, abort
from flask_login import login_required, current_user
from mfi.models import CURRENCIES
from mfi.settings import settings_bp
from mfi.settings.forms import SystemSettingsForm, UserForm, UserEditForm
from mfi.services.audit import AuditLog
from mfi.services.errors import MFIError, NotFound
from mfi.services.ledger import CapitalLedger
from mfi.services.registries import SettingsService, UserRegistry, SETTINGS_FIELDS, USER_FIELDS
from mfi.utils.decorators import admin_required
from mfi.utils.helpers import get_repository, current_actor

@settings_bp.route('/', methods=['GET', 'POST'])
@login_required
@admin_required
def system_settings():
    """System settings with the live capital position"""
    repo = get_repository()
    service = SettingsService(repo)
    settings = service.get()
    form = SystemSettingsForm(obj=settings)

    if form.validate_on_submit():
        values = {field: getattr(form, field).data for field in SETTINGS_FIELDS}
        try:
            service.update(actor=current_actor(), **values)
        except MFIError as e:
            flash(str(e), 'danger')
        else:
            flash('System settings updated successfully!', 'success')
            return redirect(url_for('settings.system_settings'))

    ledger = CapitalLedger(repo)
    capital = {currency: {'outstanding': ledger.outstanding(currency),
                          'available': ledger.available(currency)}
               for currency in CURRENCIES}

    return render_template('settings/system.html',
                         title='System Settings',
                         form=form,
                         settings=settings,
                         capital=capital)

@settings_bp.route('/users')
@login_required
@admin_required
def list_users():
    """List all users"""
    users = UserRegistry(get_repository()).list()
    return render_template('settings/users.html', title='Users', users=users)

@settings_bp.route('/users/add', methods=['GET', 'POST'])
@login_required
@admin_required
def add_user():
    """Add new user"""
    form = UserForm()

    if form.validate_on_submit():
        values = {field: getattr(form, field).data for field in USER_FIELDS}
        try:
            user = UserRegistry(get_repository()).save(
                password=form.password.data, actor=current_actor(), **values
            )
        except MFIError as e:
            flash(str(e), 'danger')
            return render_template('settings/user_form.html', title='Add User', form=form)

        flash(f'User {user.username} created successfully!', 'success')
        return redirect(url_for('settings.list_users'))

    return render_template('settings/user_form.html', title='Add User', form=form)

@settings_bp.route('/users/<int:id>/edit', methods=['GET', 'POST'])
@login_required
@admin_required
def edit_user(id):
    """Edit user"""
    registry = UserRegistry(get_repository())
    try:
        user = registry.get(id)
    except NotFound:
        abort(404)
    form = UserEditForm(obj=user)

    if form.validate_on_submit():
        values = {field: getattr(form, field).data for field in USER_FIELDS}
        try:
            registry.save(user.id, password=form.password.data or None, actor=current_actor(), **values)
        except MFIError as e:
            flash(str(e), 'danger')
            return render_template('settings/user_form.html', title=f'Edit User: {user.username}', form=form)

        flash('User updated successfully!', 'success')
        return redirect(url_for('settings.list_users'))

    return render_template('settings/user_form.html', title=f'Edit User: {user.username}', form=form)

@settings_bp.route('/users/<int:id>/delete', methods=['POST'])
@login_required
@admin_required
def delete_user(id):
    """Delete user"""
    if id == current_user.id:
        flash('You cannot delete your own account!', 'danger')
        return redirect(url_for('settings.list_users'))

    try:
        UserRegistry(get_repository()).delete(id, actor=current_actor())
    except NotFound:
        abort(404)
    except MFIError as e:
        flash(str(e), 'danger')
        return redirect(url_for('settings.list_users'))

    flash('User deleted successfully!', 'success')
    return redirect(url_for('settings.list_users'))

@settings_bp.route('/audit')
@login_required
@admin_required
def audit_log():
    """Audit trail, newest first"""
    entries = AuditLog(get_repository()).list()
    return render_template('settings/audit.html', title='Audit Log', entries=entries)
