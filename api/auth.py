"""
Authentication blueprint:
- POST   /register
- POST   /login   -> access token in the body, refresh token in an http-only cookie
- GET    /token   -> new access token from the refresh-token cookie
- DELETE /logout  -> clears the stored refresh token and the cookie

The handlers only move data between HTTP and SessionService.
"""
from __future__ import annotations

from flask import Blueprint, jsonify, current_app

from utils.decorators import pipeline, RequestContext

bp = Blueprint("auth", __name__)


def _cookie_name() -> str:
    return current_app.config["REFRESH_COOKIE_NAME"]


@bp.post("/register")
@pipeline()
def register(ctx: RequestContext, service):
    """
    Register a new user.
    ---
    tags:
      - Users
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            name: { type: string }
            email: { type: string }
            password: { type: string }
            confPassword: { type: string }
    responses:
      200:
        description: User registration successful
      400:
        description: Validation error, password mismatch or email already used
      500:
        description: Internal server error
    """
    body = ctx.body
    msg = service.register(
        body.get("name"), body.get("email"), body.get("password"), body.get("confPassword")
    )
    return jsonify({"msg": msg}), 200


@bp.post("/login")
@pipeline()
def login(ctx: RequestContext, service):
    """
    Login: return the access token, set the refresh-token cookie
    ---
    tags:
      - Authentication
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns accessToken)
      400:
        description: Validation error or wrong password
      404:
        description: Email not found
      500:
        description: Internal server error
    """
    result = service.login(ctx.body.get("email"), ctx.body.get("password"))
    response = jsonify({"accessToken": result.access_token})
    response.set_cookie(
        _cookie_name(),
        result.refresh_token,
        max_age=int(result.refresh_max_age.total_seconds()),
        httponly=True,
        secure=current_app.config["REFRESH_COOKIE_SECURE"],
        samesite="Lax",
    )
    return response, 200


@bp.get("/token")
@pipeline()
def token(ctx: RequestContext, service):
    """
    Refresh access token from the refresh-token cookie
    ---
    tags:
      - Authentication
    responses:
      200:
        description: New access token generated
      401:
        description: Refresh token cookie missing
      403:
        description: Invalid, expired or superseded refresh token
    """
    access_token = service.refresh_access_token(ctx.cookies.get(_cookie_name()))
    return jsonify({"accessToken": access_token}), 200


@bp.delete("/logout")
@pipeline()
def logout(ctx: RequestContext, service):
    """
    logout: revokes the stored refresh token
    ---
    tags:
      - Authentication
    responses:
      200:
        description: Logged out, cookie cleared
      204:
        description: No session to end
    """
    result = service.logout(ctx.cookies.get(_cookie_name()))
    if not result.revoked:
        return ("", 204)
    response = current_app.make_response(("", 200))
    response.delete_cookie(_cookie_name(), httponly=True, secure=current_app.config["REFRESH_COOKIE_SECURE"], samesite="Lax")
    return response
