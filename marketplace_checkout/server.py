"""
Marketplace Checkout MCP Server.

Exposes the checkout workflow and notification dispatch as tools over stdio:
cart management, the shipping -> payment -> review checkout steps with a
human-in-the-loop confirmation code before an order is placed, order history,
and a test-send for the configured email provider.
"""
import asyncio
import json
import logging
import os
import secrets
import time
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional

import httpx
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from .checkout import CheckoutSession, Identity, InMemoryCart, InMemoryOrderStore, LineItem, Order
from .config import DispatchSettings
from .errors import (
    CheckoutError,
    InvalidStepTransition,
    OrderPlacementFailed,
    ProviderNotImplemented,
    ValidationError,
)
from .notifications import NotificationDispatcher, NotificationMessage
from .output_sanitizer import payment_summary, sanitize_output, shipping_summary

logger = logging.getLogger(__name__)

# Debug log: every tool call and response, for session review
_DEBUG_LOG_DIR = Path(os.environ.get(
    "CHECKOUT_DEBUG_DIR",
    os.path.expanduser("~/.config/marketplace-checkout/debug"),
))


def _debug_log(tool_name: str, args: dict, result: str) -> None:
    """Append a tool call entry to the debug log file."""
    try:
        _DEBUG_LOG_DIR.mkdir(parents=True, exist_ok=True)
        log_file = _DEBUG_LOG_DIR / f"session_{datetime.now().strftime('%Y-%m-%d')}.log"
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]

        entry = (
            f"\n{'='*80}\n"
            f"[{timestamp}] TOOL: {tool_name}\n"
            f"ARGS: {sanitize_output(json.dumps(args, indent=2, default=str))}\n"
            f"RESPONSE:\n{result}\n"
        )

        with open(log_file, "a") as f:
            f.write(entry)
    except OSError as e:
        logger.debug("Debug log write failed: %s", e)

server = Server("marketplace-checkout")

# Lazy-initialized, process-wide state (single shopper per server process)
_cart: InMemoryCart | None = None
_order_store: InMemoryOrderStore | None = None
_dispatcher: NotificationDispatcher | None = None
_http_client: httpx.AsyncClient | None = None
_dispatcher_unavailable = False
_session: CheckoutSession | None = None

# Confirmation gate state
_pending_confirmations: dict[str, dict] = {}

_CONFIRMATION_TTL = 300  # 5 minutes


def _get_cart() -> InMemoryCart:
    global _cart
    if _cart is None:
        _cart = InMemoryCart()
    return _cart


def _get_order_store() -> InMemoryOrderStore:
    global _order_store
    if _order_store is None:
        _order_store = InMemoryOrderStore()
    return _order_store


async def _get_dispatcher() -> Optional[NotificationDispatcher]:
    """
    Build the email dispatcher on first use.

    A misconfigured provider is logged once and leaves the server without
    email; checkout keeps working and simply skips notifications.
    """
    global _dispatcher, _http_client, _dispatcher_unavailable
    if _dispatcher is None and not _dispatcher_unavailable:
        client = None
        try:
            settings = DispatchSettings.from_env()
            client = httpx.AsyncClient(timeout=settings.send_timeout)
            _dispatcher = NotificationDispatcher.from_settings(settings, client=client)
        except (ValueError, ProviderNotImplemented):
            logger.exception("Email provider misconfigured; notifications disabled")
            _dispatcher_unavailable = True
            if client is not None:
                await client.aclose()
            return None
        _http_client = client
    return _dispatcher


def _require_session() -> CheckoutSession:
    if _session is None:
        raise CheckoutError("No checkout in progress. Use start_checkout first.")
    return _session


def _generate_confirmation_code() -> str:
    """Generate a 6-character alphanumeric confirmation code."""
    return secrets.token_hex(3).upper()


def _cleanup_expired_confirmations() -> None:
    now = time.time()
    expired = [k for k, v in _pending_confirmations.items() if now - v["created_at"] > _CONFIRMATION_TTL]
    for k in expired:
        del _pending_confirmations[k]


def _order_view(order: Order) -> dict:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "status": order.status,
        "items": [
            {"product_id": i.product_id, "name": i.name, "unit_price": str(i.unit_price), "quantity": i.quantity}
            for i in order.items
        ],
        "subtotal": str(order.subtotal),
        "shipping": str(order.shipping_cost),
        "tax": str(order.tax),
        "total": str(order.total),
        "created_at": order.created_at.isoformat(),
        "estimated_delivery": order.estimated_delivery.isoformat(),
        "shipping_to": shipping_summary(order.shipping_data),
        "paid_with": payment_summary(order.payment_data),
    }


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="add_to_cart",
            description="Add a product line to the cart. Adding the same product again increases its quantity.",
            inputSchema={
                "type": "object",
                "properties": {
                    "product_id": {"type": "string", "description": "Product identifier"},
                    "name": {"type": "string", "description": "Product display name"},
                    "unit_price": {"type": "string", "description": "Unit price, e.g. '19.99'"},
                    "quantity": {"type": "integer", "description": "Number of units", "default": 1},
                    "seller_id": {"type": "string", "description": "Seller who fulfils this product"},
                },
                "required": ["product_id", "unit_price"],
            },
        ),
        Tool(
            name="view_cart",
            description="Show cart lines, item count, and cart total.",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="start_checkout",
            description="Start checkout for the signed-in shopper. Snapshots the cart; requires a non-empty cart.",
            inputSchema={
                "type": "object",
                "properties": {
                    "user_id": {"type": "string", "description": "Authenticated user id"},
                    "email": {"type": "string", "description": "Account email"},
                    "name": {"type": "string", "description": "Display name"},
                },
                "required": ["user_id", "email"],
            },
        ),
        Tool(
            name="submit_shipping",
            description="Complete the shipping step. Returns per-field errors if the form is invalid.",
            inputSchema={
                "type": "object",
                "properties": {
                    "shipping": {
                        "type": "object",
                        "description": (
                            "Shipping fields (first_name, last_name, email, phone, address, address2, "
                            "city, state, zip_code, country, shipping_method: standard|express|overnight)"
                        ),
                    },
                },
                "required": ["shipping"],
            },
        ),
        Tool(
            name="submit_payment",
            description="Complete the payment step. Card details are never echoed back in full.",
            inputSchema={
                "type": "object",
                "properties": {
                    "payment": {
                        "type": "object",
                        "description": (
                            "Payment fields (method: card|paypal|apple_pay|google_pay, card_number, "
                            "expiry_date MM/YY, cvv, cardholder_name, billing_address)"
                        ),
                    },
                },
                "required": ["payment"],
            },
        ),
        Tool(
            name="go_back",
            description="Return to the previous checkout step (from payment or review).",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="preview_checkout",
            description=(
                "Preview the order at the review step: totals, shipping, and a REDACTED payment summary, "
                "plus a confirmation code. Does NOT place the order."
            ),
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="confirm_purchase",
            description=(
                "Place the order. REQUIRES the confirmation_code returned by preview_checkout. "
                "The user must explicitly provide this code to authorize the purchase."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "confirmation_code": {
                        "type": "string",
                        "description": "The 6-character code from preview_checkout",
                    },
                },
                "required": ["confirmation_code"],
            },
        ),
        Tool(
            name="checkout_status",
            description="Show the current checkout step and running totals.",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="list_orders",
            description="List orders placed in this server session, newest first.",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="send_test_notification",
            description="Send a test email through the configured provider and report the delivery result.",
            inputSchema={
                "type": "object",
                "properties": {
                    "to": {"type": "string", "description": "Recipient address"},
                    "subject": {"type": "string", "description": "Subject line", "default": "Test notification"},
                },
                "required": ["to"],
            },
        ),
    ]


# ---------------------------------------------------------------------------
# Tool dispatch
# ---------------------------------------------------------------------------

@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    handler = _HANDLERS.get(name)
    if handler is None:
        return [TextContent(type="text", text=f"Unknown tool: {name}")]

    try:
        result = await handler(arguments)
        text = result if isinstance(result, str) else json.dumps(result, indent=2, default=str)
        sanitized = sanitize_output(text)

        _debug_log(name, arguments, sanitized)
        return [TextContent(type="text", text=sanitized)]

    except Exception as e:
        logger.exception("Tool %s failed", name)
        error_text = f"Error: {str(e)}"
        _debug_log(name, arguments, error_text)
        return [TextContent(type="text", text=error_text)]


# ---------------------------------------------------------------------------
# Tool implementations
# ---------------------------------------------------------------------------

async def _handle_add_to_cart(args: dict) -> dict:
    item = LineItem(
        product_id=args["product_id"],
        name=args.get("name", ""),
        unit_price=Decimal(str(args["unit_price"])),
        quantity=args.get("quantity", 1),
        seller_id=args.get("seller_id", ""),
    )
    cart = _get_cart()
    cart.add(item)
    return {
        "status": "added",
        "item_count": cart.total_items,
        "cart_total": str(await cart.total_price()),
    }


async def _handle_view_cart(args: dict) -> dict:
    cart = _get_cart()
    items = await cart.items()
    return {
        "status": "ok",
        "items": [
            {
                "product_id": i.product_id,
                "name": i.name,
                "unit_price": str(i.unit_price),
                "quantity": i.quantity,
                "line_total": str(i.line_total),
            }
            for i in items
        ],
        "item_count": cart.total_items,
        "cart_total": str(await cart.total_price()),
    }


async def _handle_start_checkout(args: dict) -> dict:
    global _session
    identity = Identity(user_id=args["user_id"], email=args["email"], name=args.get("name", ""))
    try:
        _session = await CheckoutSession.start(
            _get_cart(), identity, _get_order_store(), await _get_dispatcher(),
        )
    except CheckoutError as e:
        return {"status": "error", "message": str(e)}
    _pending_confirmations.clear()
    return {"status": "started", "step": _session.current_step.value, "summary": _session.summary()}


async def _submit(step: str, data: dict | None) -> dict:
    session = _require_session()
    try:
        result = await session.complete_step(step, data)
    except ValidationError as e:
        return {"status": "invalid", "step": session.current_step.value, "errors": e.field_errors}
    except InvalidStepTransition as e:
        return {"status": "error", "message": str(e), "step": session.current_step.value}
    return {"status": "ok", "step": result.step.value}


async def _handle_submit_shipping(args: dict) -> dict:
    return await _submit("shipping", args.get("shipping"))


async def _handle_submit_payment(args: dict) -> dict:
    return await _submit("payment", args.get("payment"))


async def _handle_go_back(args: dict) -> dict:
    session = _require_session()
    try:
        step = session.go_back()
    except InvalidStepTransition as e:
        return {"status": "error", "message": str(e), "step": session.current_step.value}
    _pending_confirmations.clear()
    return {"status": "ok", "step": step.value}


async def _handle_preview_checkout(args: dict) -> dict:
    """Review summary with a redacted payment view and a confirmation code."""
    session = _require_session()
    if session.current_step.value != "review":
        return {
            "status": "error",
            "message": f"Checkout is at '{session.current_step.value}'. Complete shipping and payment first.",
        }

    _cleanup_expired_confirmations()

    code = _generate_confirmation_code()
    _pending_confirmations[code] = {"created_at": time.time()}

    return {
        "status": "preview",
        "confirmation_code": code,
        "message": (
            f"Review your order details below. To place the order, "
            f"provide the confirmation code: {code}"
        ),
        "summary": session.summary(),
        "shipping_to": shipping_summary(session.shipping_data),
        "paying_with": payment_summary(session.payment_data),
    }


async def _handle_confirm_purchase(args: dict) -> dict:
    """Place the order if the confirmation code is valid."""
    code = args["confirmation_code"].strip().upper()

    _cleanup_expired_confirmations()

    if code not in _pending_confirmations:
        return {
            "status": "rejected",
            "message": "Invalid or expired confirmation code. Run preview_checkout again.",
        }

    session = _require_session()
    try:
        result = await session.complete_step("review")
    except OrderPlacementFailed as e:
        # Code stays valid so the shopper can retry from review
        return {"status": "failed", "message": str(e), "step": session.current_step.value, "retry": True}
    except InvalidStepTransition as e:
        return {"status": "error", "message": str(e), "step": session.current_step.value}

    _pending_confirmations.pop(code, None)
    return {
        "status": "placed",
        "message": f"Order {result.order.order_number} placed. A confirmation email is on its way.",
        "order": _order_view(result.order),
    }


async def _handle_checkout_status(args: dict) -> dict:
    if _session is None:
        return {"status": "none", "message": "No checkout in progress."}
    status = {"status": "ok", "summary": _session.summary()}
    if _session.order is not None:
        status["order_number"] = _session.order.order_number
    return status


async def _handle_list_orders(args: dict) -> dict:
    orders = _get_order_store().orders()
    return {"status": "ok", "count": len(orders), "orders": [_order_view(o) for o in orders]}


async def _handle_send_test_notification(args: dict) -> dict:
    dispatcher = await _get_dispatcher()
    if dispatcher is None:
        return {
            "status": "failed",
            "message": "Email notifications are disabled. Check the server log for the provider error.",
        }
    subject = args.get("subject", "Test notification")
    message = NotificationMessage(
        recipients=[args["to"]],
        subject=subject,
        html_body=f"<p>{subject}</p><p>Sent via {dispatcher.provider_name}.</p>",
        text_body=f"{subject}\n\nSent via {dispatcher.provider_name}.",
        tags=["test"],
    )
    result = await dispatcher.send(message)
    return {"status": "sent" if result.success else "failed", "result": result.model_dump()}


_HANDLERS = {
    "add_to_cart": _handle_add_to_cart,
    "view_cart": _handle_view_cart,
    "start_checkout": _handle_start_checkout,
    "submit_shipping": _handle_submit_shipping,
    "submit_payment": _handle_submit_payment,
    "go_back": _handle_go_back,
    "preview_checkout": _handle_preview_checkout,
    "confirm_purchase": _handle_confirm_purchase,
    "checkout_status": _handle_checkout_status,
    "list_orders": _handle_list_orders,
    "send_test_notification": _handle_send_test_notification,
}


# ---------------------------------------------------------------------------
# Server entry point
# ---------------------------------------------------------------------------

async def main():
    """Run the MCP server over stdio."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    logger.info("Marketplace checkout MCP server starting...")

    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        # Let queued confirmation emails finish before closing the HTTP client
        if _dispatcher:
            await _dispatcher.drain()
        if _http_client:
            await _http_client.aclose()


def run():
    """Sync entry point for console_scripts."""
    asyncio.run(main())
