from __future__ import annotations

from flask import Flask, request

from ..common.web import current_identity, json_body, login_required, ok, ok_page, page_request
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.fee_service

    @app.route("/api/fees/user/<int:user_id>", methods=["GET"], endpoint="fees_for_user")
    @login_required
    def fees_for_user(user_id: int):
        page = service.list_for_user(current_identity(), user_id, status=request.args.get("status"), page=page_request())
        return ok_page(page, "fees")

    @app.route("/api/fees", methods=["GET"], endpoint="fees_list")
    @login_required
    def fees_list():
        page = service.list_all(
            current_identity(),
            status=request.args.get("status"),
            batch=request.args.get("batch"),
            page=page_request(),
        )
        return ok_page(page, "fees")

    @app.route("/api/fees", methods=["POST"], endpoint="fees_create")
    @login_required
    def fees_create():
        data = json_body()
        fee = service.create_fee(
            current_identity(),
            user_id=data.get("userId"),
            amount=data.get("amount"),
            fee_type=data.get("feeType"),
            due_date=data.get("dueDate"),
            description=data.get("description"),
        )
        return ok(fee, message="Fee created successfully", status=201)

    @app.route("/api/fees/<int:fee_id>/pay", methods=["PUT"], endpoint="fees_pay")
    @login_required
    def fees_pay(fee_id: int):
        data = json_body()
        fee = service.mark_paid(
            current_identity(),
            fee_id=fee_id,
            paid_date=data.get("paidDate"),
            receipt_no=data.get("receiptNo"),
        )
        return ok(fee, message="Fee marked as paid successfully")

    @app.route("/api/fees/stats/overview", methods=["GET"], endpoint="fees_stats")
    @login_required
    def fees_stats():
        stats = service.stats(
            current_identity(),
            start=request.args.get("startDate"),
            end=request.args.get("endDate"),
        )
        return ok(stats)

    @app.route("/api/fees/overdue", methods=["GET"], endpoint="fees_overdue")
    @login_required
    def fees_overdue():
        return ok_page(service.list_overdue(current_identity(), page=page_request()), "fees")

    @app.route("/api/fees/update-overdue", methods=["PUT"], endpoint="fees_update_overdue")
    @login_required
    def fees_update_overdue():
        updated = service.sweep_overdue(current_identity())
        return ok({"updated": updated}, message=f"{updated} fees marked as overdue")
