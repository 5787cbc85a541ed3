"""Transactional email builders for order events."""
from html import escape

from ..checkout.schema import LineItem, Order
from .schema import NotificationMessage

BRAND = "Findora"


def _money(amount) -> str:
    return f"${amount:.2f}"


def _date(value) -> str:
    return value.strftime("%B %d, %Y")


def _wrap(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html><html><body style=\"font-family: Arial, sans-serif; color: #1e293b;\">"
        f"<div style=\"max-width: 600px; margin: 0 auto; padding: 24px;\">"
        f"<h1 style=\"font-size: 24px;\">{escape(title)}</h1>"
        f"{body}"
        f"<p style=\"color: #64748b; font-size: 12px;\">{BRAND} Marketplace</p>"
        "</div></body></html>"
    )


def _item_rows(items: tuple[LineItem, ...] | list[LineItem]) -> str:
    return "".join(
        "<tr>"
        f"<td>{escape(item.name or item.product_id)}</td>"
        f"<td style=\"text-align: right;\">{_money(item.unit_price)} &times; {item.quantity}</td>"
        f"<td style=\"text-align: right;\">{_money(item.line_total)}</td>"
        "</tr>"
        for item in items
    )


def _item_lines(items) -> list[str]:
    return [
        f"  {item.name or item.product_id}: {_money(item.unit_price)} x {item.quantity} = {_money(item.line_total)}"
        for item in items
    ]


def order_confirmation(order: Order, customer_name: str | None = None, tracking_url: str | None = None) -> NotificationMessage:
    """Customer-facing confirmation sent after an order is placed."""
    name = customer_name or order.shipping_data.first_name
    ship = order.shipping_data

    html_body = _wrap(
        "Order Confirmed!",
        f"<p>Hi {escape(name)}, thank you for your order.</p>"
        "<table style=\"width: 100%;\">"
        f"<tr><td>Order Number:</td><td style=\"text-align: right;\"><b>{escape(order.order_number)}</b></td></tr>"
        f"<tr><td>Order Date:</td><td style=\"text-align: right;\">{_date(order.created_at)}</td></tr>"
        f"<tr><td>Expected Delivery:</td><td style=\"text-align: right;\">{_date(order.estimated_delivery)}</td></tr>"
        "</table>"
        f"<table style=\"width: 100%;\">{_item_rows(order.items)}</table>"
        "<table style=\"width: 100%;\">"
        f"<tr><td>Subtotal:</td><td style=\"text-align: right;\">{_money(order.subtotal)}</td></tr>"
        f"<tr><td>Shipping:</td><td style=\"text-align: right;\">{_money(order.shipping_cost)}</td></tr>"
        f"<tr><td>Tax:</td><td style=\"text-align: right;\">{_money(order.tax)}</td></tr>"
        f"<tr><td><b>Total:</b></td><td style=\"text-align: right;\"><b>{_money(order.total)}</b></td></tr>"
        "</table>"
        f"<p>Shipping to {escape(ship.full_name)}, {escape(ship.city)}, {escape(ship.state)}</p>"
        + (f"<p><a href=\"{escape(tracking_url)}\">Track your order</a></p>" if tracking_url else "")
    )

    text_lines = [
        f"Hi {name}, thank you for your order.",
        "",
        f"Order Number: {order.order_number}",
        f"Order Date: {_date(order.created_at)}",
        f"Expected Delivery: {_date(order.estimated_delivery)}",
        "",
        *_item_lines(order.items),
        "",
        f"Subtotal: {_money(order.subtotal)}",
        f"Shipping: {_money(order.shipping_cost)}",
        f"Tax: {_money(order.tax)}",
        f"Total: {_money(order.total)}",
    ]
    if tracking_url:
        text_lines += ["", f"Track your order: {tracking_url}"]

    return NotificationMessage(
        recipients=[ship.email],
        subject=f"Order Confirmed - #{order.order_number}",
        html_body=html_body,
        text_body="\n".join(text_lines),
        tags=["order-confirmation"],
        metadata={"order_id": order.id, "order_number": order.order_number},
    )


def seller_new_order(order: Order, seller_id: str, seller_email: str) -> NotificationMessage:
    """Alert a seller about the lines of ``order`` they need to fulfil."""
    items = [item for item in order.items if item.seller_id == seller_id]
    revenue = sum((item.line_total for item in items), 0)
    ship = order.shipping_data

    html_body = _wrap(
        "New Order Received",
        f"<p>You have a new order <b>{escape(order.order_number)}</b>.</p>"
        f"<table style=\"width: 100%;\">{_item_rows(items)}</table>"
        f"<p>Order value: <b>{_money(revenue)}</b></p>"
        f"<p>Ship to {escape(ship.city)}, {escape(ship.state)} via {escape(ship.shipping_method)} "
        f"by {_date(order.estimated_delivery)}.</p>"
    )
    text_body = "\n".join([
        f"You have a new order {order.order_number}.",
        "",
        *_item_lines(items),
        "",
        f"Order value: {_money(revenue)}",
        f"Ship to {ship.city}, {ship.state} via {ship.shipping_method} by {_date(order.estimated_delivery)}.",
    ])

    return NotificationMessage(
        recipients=[seller_email],
        subject=f"New Order #{order.order_number} - {len(items)} item(s)",
        html_body=html_body,
        text_body=text_body,
        tags=["seller-new-order"],
        metadata={"order_id": order.id, "seller_id": seller_id},
    )


def shipping_notification(
    order: Order,
    tracking_number: str,
    carrier: str,
    tracking_url: str | None = None,
) -> NotificationMessage:
    """Tell the customer their order is on its way."""
    html_body = _wrap(
        "Your Order Has Shipped!",
        f"<p>Order <b>{escape(order.order_number)}</b> is on its way with {escape(carrier)}.</p>"
        f"<p>Tracking number: <b>{escape(tracking_number)}</b></p>"
        f"<p>Expected delivery: {_date(order.estimated_delivery)}</p>"
        + (f"<p><a href=\"{escape(tracking_url)}\">Track your package</a></p>" if tracking_url else "")
    )
    text_lines = [
        f"Order {order.order_number} is on its way with {carrier}.",
        f"Tracking number: {tracking_number}",
        f"Expected delivery: {_date(order.estimated_delivery)}",
    ]
    if tracking_url:
        text_lines.append(f"Track your package: {tracking_url}")

    return NotificationMessage(
        recipients=[order.shipping_data.email],
        subject=f"Your order #{order.order_number} has shipped",
        html_body=html_body,
        text_body="\n".join(text_lines),
        tags=["shipping-notification"],
        metadata={"order_id": order.id, "tracking_number": tracking_number},
    )


def seller_low_inventory(
    seller_email: str,
    seller_name: str,
    product_name: str,
    product_sku: str,
    current_stock: int,
    threshold: int,
    management_url: str | None = None,
) -> NotificationMessage:
    """Warn a seller that a product has fallen to or below its restock threshold."""
    html_body = _wrap(
        "Low Inventory Alert",
        f"<p>Hi {escape(seller_name)}, one of your products is running low on stock.</p>"
        "<table style=\"width: 100%;\">"
        f"<tr><td>Product:</td><td style=\"text-align: right;\"><b>{escape(product_name)}</b></td></tr>"
        f"<tr><td>SKU:</td><td style=\"text-align: right;\">{escape(product_sku)}</td></tr>"
        f"<tr><td>Current Stock:</td><td style=\"text-align: right; color: #dc2626;\"><b>{current_stock} units</b></td></tr>"
        f"<tr><td>Threshold Level:</td><td style=\"text-align: right;\">{threshold} units</td></tr>"
        "</table>"
        "<p>New orders may need to be cancelled if stock runs out.</p>"
        + (f"<p><a href=\"{escape(management_url)}\">Update inventory</a></p>" if management_url else "")
    )
    text_lines = [
        f"Hi {seller_name}, one of your products is running low on stock.",
        "",
        f"Product: {product_name} (SKU {product_sku})",
        f"Current Stock: {current_stock} units",
        f"Threshold Level: {threshold} units",
    ]
    if management_url:
        text_lines += ["", f"Update inventory: {management_url}"]

    return NotificationMessage(
        recipients=[seller_email],
        subject=f"Low Inventory Alert - {product_name} ({current_stock} left)",
        html_body=html_body,
        text_body="\n".join(text_lines),
        tags=["seller-low-inventory"],
        metadata={"product_sku": product_sku, "current_stock": current_stock},
    )


def seller_review_received(
    seller_email: str,
    seller_name: str,
    customer_name: str,
    product_name: str,
    rating: int,
    review_text: str,
    order_number: str,
    response_url: str | None = None,
) -> NotificationMessage:
    """Tell a seller a customer reviewed one of their products."""
    rating = max(1, min(5, rating))
    stars = "★" * rating + "☆" * (5 - rating)

    html_body = _wrap(
        "New Review Received!",
        f"<p>Hi {escape(seller_name)}, {escape(customer_name)} left a {rating}-star review.</p>"
        "<table style=\"width: 100%;\">"
        f"<tr><td>Product:</td><td style=\"text-align: right;\"><b>{escape(product_name)}</b></td></tr>"
        f"<tr><td>Order Number:</td><td style=\"text-align: right;\">{escape(order_number)}</td></tr>"
        f"<tr><td>Rating:</td><td style=\"text-align: right;\">{stars}</td></tr>"
        "</table>"
        f"<blockquote>{escape(review_text)}</blockquote>"
        + (f"<p><a href=\"{escape(response_url)}\">Respond to this review</a></p>" if response_url else "")
    )
    text_lines = [
        f"Hi {seller_name}, {customer_name} left a {rating}-star review.",
        "",
        f"Product: {product_name}",
        f"Order Number: {order_number}",
        f"Rating: {stars}",
        "",
        review_text,
    ]
    if response_url:
        text_lines += ["", f"Respond to this review: {response_url}"]

    return NotificationMessage(
        recipients=[seller_email],
        subject=f"New {rating}-star review for {product_name}",
        html_body=html_body,
        text_body="\n".join(text_lines),
        tags=["seller-review-received"],
        metadata={"order_number": order_number, "rating": rating},
    )
