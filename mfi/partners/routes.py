"""Funding partner routes"""
from flask import render_template, redirect, url_for, flash, request, abort
from flask_login import login_required
from mfi.partners import partners_bp
from mfi.partners.forms import PartnerForm
from mfi.services.errors import MFIError, NotFound
from mfi.services.registries import PartnerRegistry, PARTNER_FIELDS
from mfi.utils.decorators import admin_required
from mfi.utils.helpers import get_repository, current_actor

@partners_bp.route('/')
@login_required
def list_partners():
    """List funding partners"""
    status = request.args.get('status', '', type=str)
    partners = PartnerRegistry(get_repository()).list(status=status or None)
    return render_template('partners/list.html', title='Partners', partners=partners, status=status)

@partners_bp.route('/add', methods=['GET', 'POST'])
@login_required
@admin_required
def add_partner():
    """Add funding partner"""
    form = PartnerForm()

    if form.validate_on_submit():
        values = {field: getattr(form, field).data for field in PARTNER_FIELDS}
        try:
            partner = PartnerRegistry(get_repository()).save(actor=current_actor(), **values)
        except MFIError as e:
            flash(str(e), 'danger')
            return render_template('partners/form.html', title='Add Partner', form=form)

        flash(f'Partner {partner.name} added successfully!', 'success')
        return redirect(url_for('partners.list_partners'))

    return render_template('partners/form.html', title='Add Partner', form=form)

@partners_bp.route('/<int:id>/edit', methods=['GET', 'POST'])
@login_required
@admin_required
def edit_partner(id):
    """Edit funding partner"""
    registry = PartnerRegistry(get_repository())
    try:
        partner = registry.get(id)
    except NotFound:
        abort(404)
    form = PartnerForm(obj=partner)

    if form.validate_on_submit():
        values = {field: getattr(form, field).data for field in PARTNER_FIELDS}
        try:
            registry.save(partner.id, actor=current_actor(), **values)
        except MFIError as e:
            flash(str(e), 'danger')
            return render_template('partners/form.html', title=f'Edit Partner: {partner.name}', form=form)

        flash('Partner updated successfully!', 'success')
        return redirect(url_for('partners.list_partners'))

    return render_template('partners/form.html', title=f'Edit Partner: {partner.name}', form=form)

@partners_bp.route('/<int:id>/delete', methods=['POST'])
@login_required
@admin_required
def delete_partner(id):
    """Delete funding partner"""
    try:
        PartnerRegistry(get_repository()).delete(id, actor=current_actor())
    except NotFound:
        abort(404)
    except MFIError as e:
        flash(str(e), 'danger')
        return redirect(url_for('partners.list_partners'))

    flash('Partner deleted successfully!', 'success')
    return redirect(url_for('partners.list_partners'))
