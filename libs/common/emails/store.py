"""
Store-related email templates.
"""

from decimal import Decimal
from typing import Optional

from libs.common.config import get_settings
from libs.common.emails.core import send_email


def _money(value) -> str:
    return f"${Decimal(value):,.2f}"


async def send_order_confirmation_email(
    to_email: str,
    customer_name: str,
    order_number: str,
    items: list[dict],  # [{"name": str, "quantity": int, "line_total": Decimal}]
    subtotal: Decimal,
    shipping: Decimal,
    tax: Decimal,
    discount: Decimal,
    total: Decimal,
    payment_instructions: Optional[str] = None,
) -> bool:
    """
    Sent right after checkout; the order is still waiting for approval.
    """
    subject = f"Order Received - #{order_number}"

    items_text = "\n".join(
        f"  - {item['name']} x{item['quantity']} - {_money(item['line_total'])}"
        for item in items
    )
    discount_line = f"Discount: -{_money(discount)}\n" if discount else ""
    instructions = f"\n{payment_instructions}\n" if payment_instructions else ""

    body = f"""Hi {customer_name},

Thanks for your order! We've received it and it is awaiting approval.

Order #{order_number}

Items:
{items_text}

Subtotal: {_money(subtotal)}
Shipping: {_money(shipping)}
Tax: {_money(tax)}
{discount_line}Total: {_money(total)}
{instructions}
We'll email you again when your order ships.

The Hockey Pouches Team
"""
    return await send_email(to_email, subject, body)


async def send_order_shipped_email(
    to_email: str,
    customer_name: str,
    order_number: str,
    tracking_number: Optional[str] = None,
    carrier: Optional[str] = None,
) -> bool:
    subject = f"Your order #{order_number} has shipped"
    tracking = ""
    if tracking_number:
        tracking = f"\nTracking number: {tracking_number}"
        if carrier:
            tracking += f" ({carrier})"
        tracking += "\n"

    body = f"""Hi {customer_name},

Good news: order #{order_number} is on its way.
{tracking}
The Hockey Pouches Team
"""
    return await send_email(to_email, subject, body)


async def send_wholesale_decision_email(
    to_email: str,
    customer_name: str,
    approved: bool,
    reason: Optional[str] = None,
) -> bool:
    if approved:
        subject = "Your wholesale application was approved"
        body = f"""Hi {customer_name},

Your wholesale application has been approved. Wholesale pricing and
minimums now apply when you sign in.

The Hockey Pouches Team
"""
    else:
        subject = "Update on your wholesale application"
        body = f"""Hi {customer_name},

Unfortunately we could not approve your wholesale application.

Reason: {reason or "Not specified"}

The Hockey Pouches Team
"""
    return await send_email(to_email, subject, body)


async def send_contact_form_email(
    name: str, email: str, subject: Optional[str], message: str
) -> bool:
    settings = get_settings()
    body = f"""New contact form submission

From: {name} <{email}>
Subject: {subject or "(none)"}

{message}
"""
    return await send_email(
        settings.ADMIN_EMAIL,
        f"Contact form: {subject or name}",
        body,
        reply_to=email,
    )
