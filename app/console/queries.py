"""
Read/mutate helpers over the platform API.

Reads go through the per-operator query cache. Mutations are a request followed by
invalidation of the query keys they touch, a toast, and an audit event; there is no
retry and no optimistic update.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

from flask import abort, current_app, flash, g, has_request_context

from app.console.api_client import ApiClient, ApiError, api_client_from_config
from app.console.audit import record_event
from app.console.db import db_session
from app.console.query_cache import MISSING, QueryCache

logger = logging.getLogger(__name__)

DEFAULT = object()


@dataclass(frozen=True)
class MutationResult:
    ok: bool
    data: Any = None
    error: str | None = None


def query_cache() -> QueryCache:
    cache = current_app.extensions.get("query_cache")
    if cache is None:
        cache = QueryCache(max_entries=int(current_app.config.get("QUERY_CACHE_MAX_ENTRIES") or 2000))
        current_app.extensions["query_cache"] = cache
    return cache


def api_client() -> ApiClient:
    user = getattr(g, "current_user", None) if has_request_context() else None
    return api_client_from_config(
        current_app.config,
        token=getattr(user, "api_token", None),
        session=current_app.extensions.get("api_http_session"),
    )


def _scope() -> Any:
    user = getattr(g, "current_user", None) if has_request_context() else None
    return user.id if user else "anon"


def _params_key(params: dict[str, Any] | None) -> tuple | None:
    if not params:
        return None
    items = tuple(sorted((k, str(v)) for k, v in params.items() if v is not None))
    return items or None


def build_query_key(segments: tuple, params: dict[str, Any] | None = None) -> tuple:
    key = tuple(str(s) for s in segments)
    pk = _params_key(params)
    return key + (pk,) if pk else key


def build_url(segments: tuple, params: dict[str, Any] | None = None) -> str:
    """Join key segments with '/' and append non-null params as a query string."""
    url = "/".join(str(s).strip("/") if i else str(s).rstrip("/") for i, s in enumerate(segments))
    clean = [(k, str(v)) for k, v in (params or {}).items() if v is not None]
    if clean:
        url += "?" + urlencode(clean)
    return url


def _request_memo() -> dict:
    # One fetch per key per request, whatever the stale time.
    if not has_request_context():
        return {}
    memo = getattr(g, "query_memo", None)
    if memo is None:
        memo = {}
        g.query_memo = memo
    return memo


def query(*segments: Any, params: dict[str, Any] | None = None, stale_seconds: Any = DEFAULT) -> Any:
    """Cached GET. Raises ApiError/ApiUnauthorized; failures are never cached."""
    if stale_seconds is DEFAULT:
        stale_seconds = current_app.config.get("DEFAULT_STALE_SECONDS")
    cache = query_cache()
    key = (_scope(),) + build_query_key(segments, params)
    memo = _request_memo()
    if key in memo:
        return memo[key]
    hit = cache.get(key, stale_seconds)
    if hit is not MISSING:
        memo[key] = hit
        return hit
    data = api_client().get(build_url(segments), params=params)
    cache.set(key, data)
    memo[key] = data
    return data


def query_or_404(*segments: Any, params: dict[str, Any] | None = None, stale_seconds: Any = DEFAULT) -> Any:
    """`query` for a single record: a platform 404 or an empty body aborts with 404."""
    try:
        data = query(*segments, params=params, stale_seconds=stale_seconds)
    except ApiError as e:
        if e.status == 404:
            abort(404)
        raise
    if not data:
        abort(404)
    return data


def invalidate(*segments: Any) -> int:
    """
    Drop cached reads under `segments` for every operator. Platform resources are shared,
    so a mutation by one operator (or an anonymous applicant) stales everyone's copy.
    """
    prefix = tuple(str(s) for s in segments)
    memo = _request_memo()
    for k in [k for k in memo if k[1:1 + len(prefix)] == prefix]:
        del memo[k]
    return query_cache().invalidate_all_scopes(prefix)


def mutate(
    method: str,
    path: str,
    payload: Any = None,
    *,
    invalidate_keys: tuple | list = (),
    success: str | None = None,
    error: str = "Request failed.",
    prefer_server_message: bool = True,
    action: str | None = None,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
) -> MutationResult:
    """
    Send one mutation. On success, invalidate `invalidate_keys` (each a tuple of key
    segments) and flash `success`. On ApiError, flash the server message (or `error`)
    as a danger toast. ApiUnauthorized propagates to the app-level handler.
    """
    user = getattr(g, "current_user", None)
    try:
        data = api_client().request(method, path, json_body=payload)
    except ApiError as e:
        if e.status == 401:
            raise
        msg = (e.message if prefer_server_message else None) or error
        logger.warning(
            "Mutation failed: %s %s status=%s msg=%s request_id=%s",
            method, path, e.status, e.message, getattr(g, "request_id", None),
        )
        flash(msg, "danger")
        if action:
            s = db_session()
            record_event(
                s,
                actor=user,
                action=f"{action}.failed",
                entity_type=entity_type,
                entity_id=entity_id,
                reason=reason,
                metadata={"status": e.status, "message": e.message},
            )
            s.commit()
        return MutationResult(ok=False, error=msg)

    for key in invalidate_keys:
        invalidate(*key)
    if success:
        flash(success, "success")
    if action:
        s = db_session()
        record_event(
            s,
            actor=user,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            reason=reason,
        )
        s.commit()
    return MutationResult(ok=True, data=data)
