from __future__ import annotations

from datetime import date

from flask import Flask, request, send_file

from ..common.web import current_identity, json_body, login_required, ok, ok_page, page_request
from ..container import Container
from ..core.exceptions import ValidationError
from .qr import decode_qr_image, render_qr_png


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/attendance/qr/<int:user_id>", methods=["GET"], endpoint="attendance_qr")
    @login_required
    def attendance_qr(user_id: int):
        token = service.issue_token(current_identity(), user_id)
        return ok({"token": token, "image": f"/api/attendance/qr/{user_id}/image"})

    @app.route("/api/attendance/qr/<int:user_id>/image", methods=["GET"], endpoint="attendance_qr_image")
    @login_required
    def attendance_qr_image(user_id: int):
        token = service.issue_token(current_identity(), user_id)
        return send_file(render_qr_png(token), mimetype="image/png")

    @app.route("/api/attendance/mark", methods=["POST"], endpoint="attendance_mark")
    @login_required
    def attendance_mark():
        qr_data = json_body().get("qrData", "")
        result = service.mark_by_token(current_identity(), str(qr_data or ""))
        return ok(result, message="Attendance marked successfully")

    @app.route("/api/attendance/mark/image", methods=["POST"], endpoint="attendance_mark_image")
    @login_required
    def attendance_mark_image():
        """Accept an uploaded photo of a QR code and mark attendance from it."""

        if "image" not in request.files:
            raise ValidationError("Image file is required")
        token = decode_qr_image(request.files["image"].stream)
        result = service.mark_by_token(current_identity(), token.strip())
        return ok(result, message="Attendance marked successfully")

    @app.route("/api/attendance/manual", methods=["POST"], endpoint="attendance_manual")
    @login_required
    def attendance_manual():
        data = json_body()
        record = service.mark_manual(
            current_identity(),
            user_id=data.get("userId"),
            attendance_date=data.get("date"),
            status=data.get("status"),
            check_in=data.get("checkInTime"),
            check_out=data.get("checkOutTime"),
        )
        return ok(record, message="Attendance marked successfully", status=201)

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_history")
    @login_required
    def attendance_history():
        identity = current_identity()
        page = service.history(
            identity,
            request.args.get("userId") or identity.user_id,
            start=request.args.get("startDate"),
            end=request.args.get("endDate"),
            page=page_request(),
        )
        return ok_page(page, "attendance")

    @app.route("/api/attendance/stats/<int:user_id>", methods=["GET"], endpoint="attendance_stats")
    @login_required
    def attendance_stats(user_id: int):
        stats = service.stats(
            current_identity(),
            user_id,
            start=request.args.get("startDate"),
            end=request.args.get("endDate"),
        )
        return ok(stats)

    @app.route("/api/attendance/monthly/<int:user_id>", methods=["GET"], endpoint="attendance_monthly")
    @login_required
    def attendance_monthly(user_id: int):
        today = date.today()
        year = request.args.get("year") or today.year
        month = request.args.get("month") or today.month
        records = service.monthly(current_identity(), user_id, year=year, month=month)
        return ok({"attendance": records, "year": int(year), "month": int(month)})

    @app.route("/api/attendance/all", methods=["GET"], endpoint="attendance_all")
    @login_required
    def attendance_all():
        page = service.list_all(
            current_identity(),
            attendance_date=request.args.get("date"),
            batch=request.args.get("batch"),
            page=page_request(),
        )
        return ok_page(page, "attendance")
