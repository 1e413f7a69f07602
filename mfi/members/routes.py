"""Member management routes"""
from flask import render_template, redirect, url_for, flash, request, abort
from flask_login import login_required
from mfi.members import members_bp
from mfi.members.forms import MemberForm
from mfi.services.errors import MFIError, NotFound
from mfi.services.loans import LoanManager
from mfi.services.registries import MemberRegistry, MEMBER_FIELDS
from mfi.utils.helpers import get_repository, current_actor

def _member_or_404(registry, id):
    try:
        return registry.get(id)
    except NotFound:
        abort(404)

@members_bp.route('/')
@login_required
def list_members():
    """List all members"""
    search = request.args.get('search', '', type=str)
    members = MemberRegistry(get_repository()).list(search=search or None)
    return render_template('members/list.html', title='Members', members=members, search=search)

@members_bp.route('/add', methods=['GET', 'POST'])
@login_required
def add_member():
    """Register a new member"""
    form = MemberForm()

    if form.validate_on_submit():
        values = {field: getattr(form, field).data for field in MEMBER_FIELDS}
        try:
            member = MemberRegistry(get_repository()).save(actor=current_actor(), **values)
        except MFIError as e:
            flash(str(e), 'danger')
            return render_template('members/form.html', title='Add Member', form=form)

        flash(f'Member {member.full_name} added successfully!', 'success')
        return redirect(url_for('members.view_member', id=member.id))

    return render_template('members/form.html', title='Add Member', form=form)

@members_bp.route('/<int:id>')
@login_required
def view_member(id):
    """View member details and loans"""
    repo = get_repository()
    member = _member_or_404(MemberRegistry(repo), id)
    loans = LoanManager(repo).list(member_id=member.id)
    return render_template('members/view.html', title=f'Member: {member.full_name}', member=member, loans=loans)

@members_bp.route('/<int:id>/edit', methods=['GET', 'POST'])
@login_required
def edit_member(id):
    """Edit member details"""
    registry = MemberRegistry(get_repository())
    member = _member_or_404(registry, id)
    form = MemberForm(obj=member)

    if form.validate_on_submit():
        values = {field: getattr(form, field).data for field in MEMBER_FIELDS}
        try:
            registry.save(member.id, actor=current_actor(), **values)
        except MFIError as e:
            flash(str(e), 'danger')
            return render_template('members/form.html', title=f'Edit Member: {member.full_name}', form=form)

        flash('Member information updated successfully!', 'success')
        return redirect(url_for('members.view_member', id=member.id))

    return render_template('members/form.html', title=f'Edit Member: {member.full_name}', form=form)

@members_bp.route('/<int:id>/delete', methods=['POST'])
@login_required
def delete_member(id):
    """Delete member"""
    registry = MemberRegistry(get_repository())
    _member_or_404(registry, id)

    try:
        registry.delete(id, actor=current_actor())
    except MFIError as e:
        flash(str(e), 'danger')
        return redirect(url_for('members.view_member', id=id))

    flash('Member deleted successfully!', 'success')
    return redirect(url_for('members.list_members'))
