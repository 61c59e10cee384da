from __future__ import annotations

from flask import Flask, request

from ..common.web import current_identity, json_body, login_required, ok, ok_page, page_request
from ..container import Container


def register(app: Flask, container: Container) -> None:
    occupancy = container.occupancy_service
    rooms = container.room_service

    @app.route("/api/rooms", methods=["GET"], endpoint="rooms_list")
    @login_required
    def rooms_list():
        page = rooms.list_rooms(
            search=request.args.get("search"),
            room_type=request.args.get("type"),
            floor=request.args.get("floor"),
            vacancy=request.args.get("status"),
            page=page_request(),
        )
        return ok_page(page, "rooms")

    @app.route("/api/rooms/availability/status", methods=["GET"], endpoint="rooms_availability")
    @login_required
    def rooms_availability():
        return ok(rooms.availability())

    @app.route("/api/rooms/<int:room_id>", methods=["GET"], endpoint="rooms_get")
    @login_required
    def rooms_get(room_id: int):
        return ok(rooms.get_room(room_id))

    @app.route("/api/rooms", methods=["POST"], endpoint="rooms_create")
    @login_required
    def rooms_create():
        data = json_body()
        room = occupancy.create_room(
            current_identity(),
            room_no=data.get("room_no"),
            capacity=data.get("capacity"),
            room_type=data.get("type"),
            floor=data.get("floor"),
        )
        return ok(room, message="Room created successfully", status=201)

    @app.route("/api/rooms/<int:room_id>", methods=["PUT"], endpoint="rooms_update")
    @login_required
    def rooms_update(room_id: int):
        data = json_body()
        room = occupancy.update_room(
            current_identity(),
            room_id=room_id,
            capacity=data.get("capacity"),
            room_type=data.get("type"),
            floor=data.get("floor"),
            is_active=data.get("is_active"),
        )
        return ok(room, message="Room updated successfully")

    @app.route("/api/rooms/<int:room_id>", methods=["DELETE"], endpoint="rooms_delete")
    @login_required
    def rooms_delete(room_id: int):
        occupancy.delete_room(current_identity(), room_id=room_id)
        return ok(message="Room deleted successfully")

    @app.route("/api/rooms/<int:room_id>/assign", methods=["POST"], endpoint="rooms_assign")
    @login_required
    def rooms_assign(room_id: int):
        room = occupancy.assign(current_identity(), room_id=room_id, student_id=json_body().get("studentId"))
        return ok(room, message="Student assigned to room successfully")

    @app.route("/api/rooms/<int:room_id>/unassign", methods=["POST"], endpoint="rooms_unassign")
    @login_required
    def rooms_unassign(room_id: int):
        room = occupancy.unassign(current_identity(), room_id=room_id, student_id=json_body().get("studentId"))
        return ok(room, message="Student unassigned from room successfully")
