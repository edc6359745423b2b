from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, g, redirect, request, url_for
from sqlalchemy.orm import Session

from app.coaching.constants import ROLE_LABELS, ROLE_PERMISSIONS
from app.coaching.models import Permission, Role, User


def user_has_permission(user: User | None, permission_key: str) -> bool:
    if not user or not user.is_active or user.is_archived:
        return False
    for role in user.roles:
        for perm in role.permissions:
            if perm.key == permission_key:
                return True
    return False


def _login_redirect():
    nxt = request.full_path or request.path
    # Avoid trailing '?' from full_path when there is no query string.
    if nxt.endswith("?"):
        nxt = nxt[:-1]
    return redirect(url_for("auth.login_get", next=nxt))


def require_login(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user: User | None = getattr(g, "current_user", None)
        if not user or not user.is_active:
            return _login_redirect()
        return fn(*args, **kwargs)

    return wrapped


def require_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            # Unauthenticated → redirect to login
            if not user or not user.is_active:
                return _login_redirect()
            # Authenticated but unauthorized → 403
            if not user_has_permission(user, permission_key):
                g.missing_permission = permission_key
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator


def ensure_roles(s: Session) -> dict[str, Role]:
    """
    Create the built-in roles and their permissions if missing (idempotent).
    Returns roles keyed by role key.
    """
    perms: dict[str, Permission] = {p.key: p for p in s.query(Permission).all()}
    roles: dict[str, Role] = {r.key: r for r in s.query(Role).all()}

    for role_key, role_perms in ROLE_PERMISSIONS.items():
        role = roles.get(role_key)
        if role is None:
            role = Role(key=role_key, name=ROLE_LABELS[role_key])
            s.add(role)
            roles[role_key] = role
        for perm_key, perm_name in role_perms.items():
            perm = perms.get(perm_key)
            if perm is None:
                perm = Permission(key=perm_key, name=perm_name)
                s.add(perm)
                perms[perm_key] = perm
            if perm not in role.permissions:
                role.permissions.append(perm)
    s.flush()
    return roles


def get_role(s: Session, role_key: str) -> Role:
    role = s.query(Role).filter(Role.key == role_key).one_or_none()
    if role is None:
        role = ensure_roles(s).get(role_key)
    if role is None:
        raise ValueError(f"Unknown role: {role_key}")
    return role


def set_user_role(s: Session, user: User, role_key: str) -> None:
    """Replace the user's role set with a single role."""
    role = get_role(s, role_key)
    user.roles = [role]
