from __future__ import annotations

from flask import Blueprint, abort, current_app, flash, g, redirect, render_template, request, url_for

from app.coaching.db import db_session
from app.coaching.models import User
from app.coaching.modules.partners.models import Partner
from app.coaching.modules.partners.service import (
    create_partner,
    delete_partner,
    list_partners,
    validate_partner_payload,
)
from app.coaching.rbac import require_permission

bp = Blueprint("partners", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.get("/admin/partners")
@require_permission("partners.manage")
def admin_list():
    s = db_session()
    return render_template("admin/partners/list.html", partners=list_partners(s))


@bp.post("/admin/partners")
@require_permission("partners.manage")
def admin_create():
    s = db_session()
    u = _current_user()

    payload = {
        "brand_name": request.form.get("brand_name"),
        "description": request.form.get("description"),
        "coupon_code": request.form.get("coupon_code"),
        "discount_url": request.form.get("discount_url"),
        "sort_order": request.form.get("sort_order"),
    }
    uploads = [f for f in request.files.getlist("images") if f and f.filename]

    errors = validate_partner_payload(payload, len(uploads))
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("partners.admin_list"))

    images = [(f.read(), f.filename, f.mimetype) for f in uploads]
    try:
        partner = create_partner(
            s,
            payload,
            images,
            u,
            max_bytes=int(current_app.config.get("MAX_PHOTO_BYTES") or 10 * 1024 * 1024),
        )
        s.commit()
    except ValueError as e:
        s.rollback()
        flash(str(e), "danger")
        return redirect(url_for("partners.admin_list"))

    flash(f"Partner {partner.brand_name} created.", "success")
    return redirect(url_for("partners.admin_list"))


@bp.post("/admin/partners/<int:partner_id>/delete")
@require_permission("partners.manage")
def admin_delete(partner_id: int):
    s = db_session()
    u = _current_user()
    partner = s.get(Partner, partner_id)
    if not partner:
        abort(404)
    name = partner.brand_name
    delete_partner(s, partner, u)
    s.commit()
    flash(f"Partner {name} deleted.", "success")
    return redirect(url_for("partners.admin_list"))


@bp.get("/student/partners")
@require_permission("student.view")
def student_list():
    s = db_session()
    return render_template("student/partners.html", partners=list_partners(s))
