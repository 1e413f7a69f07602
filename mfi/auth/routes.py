"""Authentication routes"""
from flask import render_template, redirect, url_for, flash, request
from flask_login import login_user, logout_user, current_user, login_required
from urllib.parse import urlparse
from mfi.auth import auth_bp
from mfi.auth.forms import LoginForm, ChangePasswordForm
from mfi.services.errors import MFIError
from mfi.services.registries import UserRegistry
from mfi.utils.helpers import get_repository, current_actor

@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    """User login"""
    if current_user.is_authenticated:
        return redirect(url_for('main.dashboard'))

    form = LoginForm()
    if form.validate_on_submit():
        user = UserRegistry(get_repository()).authenticate(form.username.data, form.password.data)

        if user is None:
            flash('Invalid username or password, or account deactivated.', 'danger')
            return redirect(url_for('auth.login'))

        login_user(user, remember=form.remember_me.data)

        next_page = request.args.get('next')
        if not next_page or urlparse(next_page).netloc != '':
            next_page = url_for('main.dashboard')

        flash(f'Welcome back, {user.name}!', 'success')
        return redirect(next_page)

    return render_template('auth/login.html', title='Sign In', form=form)

@auth_bp.route('/logout')
def logout():
    """User logout"""
    logout_user()
    flash('You have been logged out successfully.', 'info')
    return redirect(url_for('auth.login'))

@auth_bp.route('/change-password', methods=['GET', 'POST'])
@login_required
def change_password():
    """Change own password"""
    form = ChangePasswordForm()
    if form.validate_on_submit():
        if not current_user.check_password(form.current_password.data):
            flash('Current password is incorrect', 'danger')
            return redirect(url_for('auth.change_password'))

        try:
            UserRegistry(get_repository()).save(
                current_user.id, password=form.new_password.data, actor=current_actor()
            )
        except MFIError as e:
            flash(str(e), 'danger')
            return redirect(url_for('auth.change_password'))

        flash('Your password has been changed successfully!', 'success')
        return redirect(url_for('main.dashboard'))

    return render_template('auth/change_password.html', title='Change Password', form=form)
