"""Webhook endpoint receiving account lifecycle events from the identity provider.

This endpoint does NOT use bearer or session authentication: deliveries are
authenticated by their Svix signature headers inside the dispatcher.
"""
from __future__ import annotations

from flask import Blueprint, Response, current_app, jsonify, request

bp = Blueprint("webhooks", __name__)


@bp.route("/api/webhooks/clerk", methods=["POST"])
def receive_webhook():
    """Verify and apply one delivery."""
    dispatcher = current_app.config["WEBHOOK_DISPATCHER"]

    # Raw bytes: the signature covers the body exactly as sent
    body = request.get_data(cache=False)
    result = dispatcher.handle(request.headers, body)

    if result.body is None:
        return Response("", status=result.status_code)
    return jsonify(result.body), result.status_code


@bp.after_request
def add_delivery_id(response):
    """Echo the delivery id for tracing on the provider's dashboard."""
    delivery_id = request.headers.get("svix-id") or request.headers.get("webhook-id")
    if delivery_id:
        response.headers["X-Delivery-Id"] = delivery_id
    return response
