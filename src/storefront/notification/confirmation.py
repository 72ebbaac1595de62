"""Order confirmation email content."""

from dataclasses import dataclass
from html import escape


@dataclass(frozen=True)
class ConfirmationMessage:
    to: str
    subject: str
    body: str
    html_body: str


def render_confirmation(to: str, order_number: str, items: list[dict], total: float, client_url: str):
    orders_url = f"{client_url.rstrip('/')}/account?tab=orders"

    text_lines = [f"Thank you for your order {order_number}.", ""]
    html_rows = []
    for item in items:
        line_total = item["price"] * item["quantity"]
        variant = " / ".join(v for v in (item.get("size"), item.get("color")) if v)
        label = f"{item['name']} ({variant})" if variant else item["name"]
        text_lines.append(f"- {label} x {item['quantity']}: ${line_total:.2f}")
        html_rows.append(
            f"<tr><td>{escape(label)}</td><td>{item['quantity']}</td><td>${line_total:.2f}</td></tr>"
        )

    text_lines += ["", f"Total: ${total:.2f}", "", f"Track your order: {orders_url}"]

    html_body = (
        "<html><body>"
        "<h1>Order Confirmation</h1>"
        f"<p>Thank you for your order <strong>{escape(order_number)}</strong>.</p>"
        f"<table>{''.join(html_rows)}</table>"
        f"<p class=\"total\">Total: ${total:.2f}</p>"
        f"<p><a href=\"{escape(orders_url)}\">View your orders</a></p>"
        "</body></html>"
    )

    return ConfirmationMessage(
        to=to,
        subject=f"Order Confirmation - {order_number}",
        body="\n".join(text_lines),
        html_body=html_body,
    )
