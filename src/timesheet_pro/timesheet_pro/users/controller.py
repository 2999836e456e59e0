from __future__ import annotations

from flask import Flask, session

from ..common.web import current_user_id, json_body, json_ok, login_required
from ..container import Container
from .model import User


def user_to_dict(user: User) -> dict:
    return {
        "id": str(user.user_id),
        "name": user.name,
        "email": user.email,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/api/v1/users", methods=["POST"], endpoint="register_user")
    def register_user():
        data = json_body()
        user = container.user_service.register(
            name=data.get("name", ""),
            email=data.get("email", ""),
            password=data.get("password", ""),
        )
        return json_ok(user_to_dict(user), 201, "User registered")

    @app.route("/api/v1/users/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        s_user = container.auth_service.authenticate(data.get("email", ""), data.get("password", ""))

        session.clear()
        session["user_id"] = str(s_user.user_id)
        session["name"] = s_user.name
        session["email"] = s_user.email
        return json_ok({"id": str(s_user.user_id), "name": s_user.name, "email": s_user.email})

    @app.route("/api/v1/users/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return json_ok(message="Logged out")

    @app.route("/api/v1/users/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        user = container.user_service.get_profile(current_user_id())
        return json_ok(user_to_dict(user))

    @app.route("/api/v1/users/me", methods=["PUT"], endpoint="update_me")
    @login_required
    def update_me():
        data = json_body()
        user = container.user_service.update_profile(
            current_user_id(),
            name=data.get("name", ""),
            email=data.get("email", ""),
        )
        session["name"] = user.name
        session["email"] = user.email
        return json_ok(user_to_dict(user), message="Profile updated")
