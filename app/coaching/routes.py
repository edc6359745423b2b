from flask import Blueprint, g, redirect, render_template

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    from app.coaching.auth import home_url_for

    user = getattr(g, "current_user", None)
    if user:
        return redirect(home_url_for(user))
    return render_template("public/index.html")


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """Liveness probe: no DB access."""
    return "ok", 200
