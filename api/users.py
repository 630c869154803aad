from __future__ import annotations

from flask import Blueprint, jsonify

from utils.decorators import pipeline, authenticate, authorize_owner, RequestContext

bp = Blueprint("users", __name__)


@bp.put("/user/<id>")
@pipeline(authenticate, authorize_owner)
def update_user(ctx: RequestContext, service):
    """
    Update own account (name, email, password). Absent fields are kept.
    ---
    tags:
      - Account Manage
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: path
         name: id
         type: string
         required: true
      -  in: body
         name: body
         schema:
           type: object
           properties:
             name: { type: string }
             email: { type: string }
             password: { type: string }
    responses:
      200: { description: Account updated }
      400: { description: Validation error or email already used }
      401: { description: Missing or invalid token }
      403: { description: Not the account owner }
      404: { description: User not found }
    """
    body = ctx.body
    msg = service.update_account(
        ctx.claims["userId"],
        ctx.path_params["id"],
        name=body.get("name"),
        email=body.get("email"),
        password=body.get("password"),
    )
    return jsonify({"msg": msg}), 200


@bp.delete("/user/<id>")
@pipeline(authenticate, authorize_owner)
def delete_user(ctx: RequestContext, service):
    """
    Delete own account
    ---
    tags:
      - Account Manage
    security:
      - Bearer: []
    parameters:
      -  in: path
         name: id
         type: string
         required: true
    responses:
      200: { description: Account deleted }
      401: { description: Missing or invalid token }
      403: { description: Not the account owner }
      404: { description: User not found }
    """
    msg = service.delete_account(ctx.claims["userId"], ctx.path_params["id"])
    return jsonify({"msg": msg}), 200
