"""Order confirmation template — sent once the payment provider confirms payment."""

from html import escape

from storefront.notifications.notification import NotificationChannel, NotificationType


def _money(amount, currency) -> str:
    return f"{currency} {float(amount or 0):.2f}"


def _address_lines(address: dict) -> list[str]:
    city_parts = (address.get("city"), address.get("state"), address.get("postal_code"))
    city_line = " ".join(part for part in city_parts if part)
    lines = [address.get("full_name"), address.get("street"), city_line, address.get("country"), address.get("phone")]
    return [line for line in lines if line]


class OrderConfirmationTemplate:
    notification_type = NotificationType.ORDER_CONFIRMATION.value
    default_channels = [NotificationChannel.EMAIL.value]

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        currency = context.get("currency", "USD")
        items = context.get("items", [])
        address = context.get("shipping_address") or {}

        item_lines = [
            f"  {item['quantity']} x {item['name']} @ {_money(item['unit_price'], currency)}" for item in items
        ]
        body = "\n".join(
            [
                "Thank you for your order!",
                "",
                f"Order ID: {order_id}",
                "",
                "Items:",
                *item_lines,
                "",
                f"Subtotal: {_money(context.get('subtotal'), currency)}",
                f"Shipping: {_money(context.get('shipping_cost'), currency)}",
                f"Tax: {_money(context.get('tax_total'), currency)}",
                f"Total: {_money(context.get('total_amount'), currency)}",
                "",
                "Shipping address:",
                *(f"  {line}" for line in _address_lines(address)),
                "",
                "We will notify you once your order ships.",
            ]
        )

        html_items = "".join(
            f"<li>{item['quantity']} &times; {escape(str(item['name']))} "
            f"@ {escape(_money(item['unit_price'], currency))}</li>"
            for item in items
        )
        html_address = "<br>".join(escape(str(line)) for line in _address_lines(address))
        html_body = (
            "<h2>Thank you for your order!</h2>"
            f"<p>Order ID: {escape(str(order_id))}</p>"
            f"<ul>{html_items}</ul>"
            f"<p>Total: {escape(_money(context.get('total_amount'), currency))}</p>"
            f"<p>Shipping Address:<br>{html_address}</p>"
            "<p>We will notify you once your order ships.</p>"
        )

        return {
            "subject": f"Order Confirmation #{order_id}",
            "body": body,
            "html_body": html_body,
        }
