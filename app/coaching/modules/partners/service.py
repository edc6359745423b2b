from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import TYPE_CHECKING

from app.coaching.audit import record_event
from app.coaching.utils import sanitize_upload_filename, validate_image_upload

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.coaching.models import User
    from app.coaching.modules.partners.models import Partner

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = {
    "brand_name": "Brand name",
    "description": "Description",
    "coupon_code": "Coupon code",
    "discount_url": "Discount link",
}


def validate_partner_payload(payload: dict, image_count: int) -> list[str]:
    errors = []
    missing = [label for key, label in REQUIRED_FIELDS.items() if not (payload.get(key) or "").strip()]
    if missing:
        errors.append(f"Required: {', '.join(missing)}.")
    url = (payload.get("discount_url") or "").strip()
    if url and not url.startswith(("http://", "https://")):
        errors.append("Discount link must start with http:// or https://.")
    if image_count < 1:
        errors.append("Add at least one image.")
    return errors


def create_partner(
    s: "Session",
    payload: dict,
    images: list[tuple[bytes, str, str | None]],
    user: "User",
    *,
    max_bytes: int,
) -> "Partner":
    """
    images: (bytes, filename, content_type) in upload order; the first one is
    stored as the logo.
    """
    from flask import current_app
    from app.coaching.storage import storage_from_config
    from app.coaching.modules.partners.models import Partner

    checked = []
    for data, filename, content_type in images:
        ctype = validate_image_upload(filename, content_type, len(data), max_bytes)
        checked.append((data, sanitize_upload_filename(filename, default="image.jpg"), ctype))

    try:
        sort_order = int((payload.get("sort_order") or "0").strip() or 0)
    except ValueError:
        sort_order = 0

    storage = storage_from_config(current_app.config)
    stamp = int(datetime.utcnow().timestamp() * 1000)
    keys = []
    for i, (data, safe_name, ctype) in enumerate(checked):
        key = f"partners/{stamp}_{i}_{safe_name}"
        storage.put_bytes(key, data, content_type=ctype)
        keys.append(key)

    partner = Partner(
        brand_name=payload["brand_name"].strip(),
        description=payload["description"].strip(),
        coupon_code=payload["coupon_code"].strip(),
        discount_url=payload["discount_url"].strip(),
        logo_storage_key=keys[0] if keys else None,
        image_keys_json=json.dumps(keys),
        sort_order=sort_order,
        created_by_user_id=user.id,
    )
    s.add(partner)
    s.flush()
    record_event(
        s,
        actor=user,
        action="partner.create",
        entity=partner,
        metadata={"brand_name": partner.brand_name, "images": len(keys)},
    )
    return partner


def list_partners(s: "Session") -> list["Partner"]:
    from app.coaching.modules.partners.models import Partner

    return s.query(Partner).order_by(Partner.sort_order.asc(), Partner.brand_name.asc()).all()


def delete_partner(s: "Session", partner: "Partner", user: "User") -> None:
    from flask import current_app
    from app.coaching.storage import StorageError, storage_from_config

    storage = storage_from_config(current_app.config)
    for key in partner.image_keys:
        try:
            storage.delete(key)
        except StorageError as e:
            logger.warning("Partner image delete failed key=%s: %s", key, e)

    record_event(
        s,
        actor=user,
        action="partner.delete",
        entity=partner,
        metadata={"brand_name": partner.brand_name},
    )
    s.delete(partner)
