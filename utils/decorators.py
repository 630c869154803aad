"""
Request context and the ordered request pipeline.

A view decorated with @pipeline(authenticate, authorize_owner) receives a
RequestContext built from the Flask request. Each step is a plain function
(ctx, service) -> ctx that either returns the (possibly enriched) context or
raises a terminal ServiceError, which the app error handlers render.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import wraps
from typing import Any, Callable, Dict, Optional, Sequence

from flask import request, current_app

from services.errors import Unauthorized
from utils.security import TokenInvalid

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class RequestContext:
    body: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    cookies: Dict[str, str] = field(default_factory=dict)
    path_params: Dict[str, Any] = field(default_factory=dict)
    # set by authenticate()
    claims: Optional[Dict[str, Any]] = None

    @classmethod
    def from_request(cls, req, path_params: Optional[dict] = None) -> "RequestContext":
        body = req.get_json(silent=True)
        return cls(
            body=body if isinstance(body, dict) else {},
            headers=dict(req.headers),
            cookies=dict(req.cookies),
            path_params=dict(path_params or {}),
        )


Step = Callable[[RequestContext, Any], RequestContext]


def authenticate(ctx: RequestContext, service) -> RequestContext:
    """Verify the bearer access token and attach its claims."""
    auth = ctx.headers.get("Authorization", "")
    if not auth.startswith(BEARER_PREFIX):
        raise Unauthorized("Missing or invalid Authorization header")
    token = auth[len(BEARER_PREFIX):].strip()
    try:
        claims = service.issuer.verify_access(token)
    except TokenInvalid:
        raise Unauthorized("Invalid token")
    return replace(ctx, claims=claims)


def authorize_owner(ctx: RequestContext, service) -> RequestContext:
    """Allow only the account named by the <id> path segment."""
    if ctx.claims is None:
        raise Unauthorized("Unauthorized")
    service.guard.check(ctx.claims, ctx.path_params.get("id"))
    return ctx


def run_pipeline(ctx: RequestContext, service, steps: Sequence[Step]) -> RequestContext:
    for step in steps:
        ctx = step(ctx, service)
    return ctx


def get_service():
    return current_app.extensions["session_service"]


def pipeline(*steps: Step):
    def decorator(fn):
        @wraps(fn)
        def wrapper(**kwargs):
            service = get_service()
            ctx = RequestContext.from_request(request, kwargs)
            ctx = run_pipeline(ctx, service, steps)
            return fn(ctx, service)

        return wrapper

    return decorator
