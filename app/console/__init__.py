import logging
from datetime import timedelta

from flask import Flask, flash, g, redirect, render_template, request, session, url_for
from dotenv import load_dotenv

from app.console.api_client import ApiError, ApiUnauthorized
from app.console.config import load_config
from app.console.db import init_db, teardown_db_session
from app.console.query_cache import QueryCache
from app.console.routes import bp as routes_bp
from app.console.auth import bp as auth_bp, end_session, load_current_user
from app.console.dashboard import bp as dashboard_bp
from app.console.modules.franchisor_settings.admin import bp as franchisor_settings_bp
from app.console.modules.external_services.admin import bp as external_services_bp
from app.console.modules.franchises.admin import bp as franchises_bp
from app.console.modules.franchise_plans.admin import bp as franchise_plans_bp
from app.console.modules.leads.admin import bp as leads_bp
from app.console.modules.campaigns.admin import bp as campaigns_bp
from app.console.modules.asset_selection.admin import bp as asset_selection_bp
from app.console.modules.royalties.admin import bp as royalties_bp
from app.console.modules.financial.admin import bp as financial_bp
from app.console.modules.tax_reports.admin import bp as tax_reports_bp
from app.console.formatting import register_filters

logger = logging.getLogger(__name__)


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    from app.console.security import ensure_csrf_token, resume_path, validate_csrf

    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.context_processor
    def _inject_permissions() -> dict:
        from app.console.rbac import user_has_permission

        def has_perm(key: str) -> bool:
            return user_has_permission(getattr(g, "current_user", None), key)

        # Only the persona already resolved for this request; the nav never triggers a fetch.
        return {"has_perm": has_perm, "nav_persona": getattr(g, "persona", None)}

    register_filters(app)

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(("/static/", "/health", "/healthz")):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if (request.endpoint or "").startswith("auth."):
                return None
            if not validate_csrf(request):
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400

    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
        if not str(app.config.get("API_BASE_URL") or "").startswith("https://"):
            raise RuntimeError("API_BASE_URL must be an https:// URL in production.")

    init_db(app)
    app.extensions["query_cache"] = QueryCache(max_entries=app.config["QUERY_CACHE_MAX_ENTRIES"])

    def _dispose_engine_on_fork() -> None:
        import os
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                cache = app.extensions.get("query_cache")
                if cache is not None:
                    cache.clear()

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(dashboard_bp, url_prefix="/console")
    app.register_blueprint(franchisor_settings_bp, url_prefix="/franchisor")
    app.register_blueprint(external_services_bp, url_prefix="/franchisor")
    app.register_blueprint(franchises_bp, url_prefix="/franchises")
    app.register_blueprint(franchise_plans_bp, url_prefix="/plans")
    app.register_blueprint(leads_bp)
    app.register_blueprint(campaigns_bp, url_prefix="/campaigns")
    app.register_blueprint(asset_selection_bp, url_prefix="/assets")
    app.register_blueprint(royalties_bp, url_prefix="/royalties")
    app.register_blueprint(financial_bp, url_prefix="/financial")
    app.register_blueprint(tax_reports_bp, url_prefix="/tax")

    def _load_user_wrapper():
        if request.path.startswith(("/static/", "/health", "/healthz")):
            g.current_user = None
            return None
        return load_current_user()

    app.before_request(_load_user_wrapper)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(ApiUnauthorized)
    def _err_api_unauthorized(e):  # type: ignore[no-redef]
        user = getattr(g, "current_user", None)
        app.logger.warning(
            "Platform API rejected credentials (user=%s request_id=%s)",
            getattr(user, "email", None), getattr(g, "request_id", None),
        )
        end_session(user)
        flash("Your platform session expired. Please sign in again.", "warning")
        return redirect(url_for("auth.login_get", next=resume_path(request))), 302

    @app.errorhandler(ApiError)
    def _err_api(e):  # type: ignore[no-redef]
        app.logger.error(
            "Platform API read failed: status=%s message=%s path=%s request_id=%s",
            e.status, e.message, request.path, getattr(g, "request_id", None),
        )
        return render_template("errors/upstream.html", message=e.message, status=e.status), 502

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return render_template("errors/500.html"), 500

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return render_template("errors/404.html"), 404

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        missing = getattr(g, "missing_permission", None)
        if missing:
            app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        return render_template("errors/403.html", missing_permission=missing), 403

    logger.info("create_app() complete; app ready to serve (api=%s)", app.config.get("API_BASE_URL"))

    return app
