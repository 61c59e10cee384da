from __future__ import annotations

from flask import Flask, request, session

from ..common.web import current_identity, json_body, login_required, ok, ok_page, page_request
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    def auth_login():
        data = json_body()
        s_user = container.auth_service.authenticate(data.get("email", ""), data.get("password", ""))

        session.clear()
        session["user_id"] = s_user.user_id
        session["name"] = s_user.name
        session["role"] = s_user.role.value

        return ok(s_user, message="Login successful")

    @app.route("/api/auth/logout", methods=["POST"], endpoint="auth_logout")
    def auth_logout():
        session.clear()
        return ok(message="Logout successful")

    @app.route("/api/auth/me", methods=["GET"], endpoint="auth_me")
    @login_required
    def auth_me():
        identity = current_identity()
        return ok(container.user_service.get_user(identity, identity.user_id))

    @app.route("/api/users", methods=["GET"], endpoint="users_list")
    @login_required
    def users_list():
        page = container.user_service.list_users(
            current_identity(),
            search=request.args.get("search"),
            role=request.args.get("role"),
            batch=request.args.get("batch"),
            page=page_request(),
        )
        return ok_page(page, "users")

    @app.route("/api/users/<int:user_id>", methods=["GET"], endpoint="users_get")
    @login_required
    def users_get(user_id: int):
        return ok(container.user_service.get_user(current_identity(), user_id))

    @app.route("/api/users", methods=["POST"], endpoint="users_create")
    @login_required
    def users_create():
        data = json_body()
        user = container.user_service.create_account(
            current_identity(),
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role") or "student",
            room_no=data.get("room_no"),
            batch=data.get("batch"),
            phone=data.get("phone"),
        )
        return ok(user, message="User created successfully", status=201)

    @app.route("/api/users/<int:user_id>", methods=["PUT"], endpoint="users_update")
    @login_required
    def users_update(user_id: int):
        user = container.user_service.update_profile(current_identity(), user_id, json_body())
        return ok(user, message="User updated successfully")

    @app.route("/api/users/<int:user_id>", methods=["DELETE"], endpoint="users_delete")
    @login_required
    def users_delete(user_id: int):
        container.occupancy_service.delete_user(current_identity(), user_id=user_id)
        return ok(message="User deleted successfully")

    @app.route("/api/users/stats/dashboard", methods=["GET"], endpoint="users_dashboard")
    @login_required
    def users_dashboard():
        return ok(container.dashboard_service.stats(current_identity()))

    @app.route("/api/users/batch/<batch>", methods=["GET"], endpoint="users_by_batch")
    @login_required
    def users_by_batch(batch: str):
        return ok(container.user_service.list_by_batch(batch))

    @app.route("/api/users/room/<room_no>/roommates", methods=["GET"], endpoint="users_roommates")
    @login_required
    def users_roommates(room_no: str):
        return ok(container.room_service.roommates(room_no))
