"""HTTP endpoints for the user API."""

from __future__ import annotations

import logging
from collections.abc import Callable

from flask import Blueprint, Flask, Request, jsonify, request

from ensenas.dtos import AddExperiencePayload, FirebaseUser
from ensenas.user_service import UserService

logger = logging.getLogger(__name__)

_TEXT = {"Content-Type": "text/plain; charset=utf-8"}

Authenticator = Callable[[Request], FirebaseUser]


class AuthenticationError(Exception):
    """Raised by an authenticator when a request carries no valid identity."""


def _text(body: str, status: int):
    return body, status, _TEXT


def _creation_failure(err: Exception):
    message = str(err)
    if "Authorization" in message:
        return _text(message, 401)
    if "verify Firebase" in message:
        return _text("Invalid Firebase token", 401)
    if isinstance(err, AuthenticationError):
        return _text(message, 401)
    return _text("Something went wrong", 500)


def create_blueprint(service: UserService, authenticate: Authenticator) -> Blueprint:
    """Build the user routes around a service and a request authenticator."""
    bp = Blueprint("users", __name__)

    @bp.post("")
    def create_user():
        logger.info("Creating user")
        try:
            identity = authenticate(request)
            created = service.create_user_from_token(identity)
        except Exception as err:  # every failure is mapped to a status below
            logger.error("Failed to create user: %r", err)
            return _creation_failure(err)
        logger.info("Successfully created user: %r", created)
        return jsonify(created.to_dict()), 201

    @bp.get("")
    def get_all_users():
        logger.info("Fetching all users")
        try:
            users = service.get_all_users()
        except Exception as err:
            logger.error("Failed to fetch users: %r", err)
            return _text("Internal server error", 500)
        logger.info("Successfully fetched %d users", len(users))
        return jsonify([user.to_dict() for user in users]), 200

    @bp.get("/<user_id>")
    def get_user(user_id: str):
        logger.info("Fetching user with id: %s", user_id)
        try:
            user = service.get_user(user_id)
        except Exception as err:
            logger.error("Failed to fetch user with id: %r: %r", user_id, err)
            return _text("User not found", 404)
        logger.info("Successfully fetched user: %r", user)
        return jsonify(user.to_dict() if user is not None else None), 200

    @bp.delete("/<user_id>")
    def delete_user(user_id: str):
        logger.info("Deleting user with id: %r", user_id)
        try:
            service.delete_user(user_id)
        except Exception as err:
            logger.error("Failed to delete user with id: %r: %r", user_id, err)
            return _text("Internal server error", 500)
        logger.info("Successfully deleted user with id: %s", user_id)
        return _text("User deleted", 200)

    @bp.post("/<user_id>")
    def add_experience(user_id: str):
        try:
            payload = AddExperiencePayload.from_json(request.get_json(silent=True))
        except ValueError as err:
            return _text(f"Json deserialize error: {err}", 400)
        try:
            updated = service.add_experience(user_id, payload.gained_exp)
        except Exception as err:
            logger.error("Failed to add experience: %s", err)
            return _text("Failed to add experience", 500)
        return jsonify(updated.to_dict()), 200

    return bp


def create_app(service: UserService, authenticate: Authenticator) -> Flask:
    """Build a Flask application serving the user routes under /users."""
    app = Flask(__name__)
    app.register_blueprint(create_blueprint(service, authenticate), url_prefix="/users")
    return app