# backend/utils/pdf.py
from datetime import datetime
from io import BytesIO
from typing import Sequence

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from models.order import Order

STORE_NAME = "AJAY BHADA CENTER"
CURRENCY = "Rs."

FONT_REGULAR_NAME = "Helvetica"
FONT_BOLD_NAME = "Helvetica-Bold"

PRIMARY = (0.85, 0.33, 0.1)
LIGHT_GRAY = (0.95, 0.95, 0.95)


def generate_order_receipt_pdf(order: Order) -> bytes:
    """
    Renders an order receipt:
    - header band with the store name
    - order id, date and status badges
    - customer and shipping details
    - line items table (snapshotted names and prices)
    - totals
    """
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4

    def draw_text(x, y, text, font=FONT_REGULAR_NAME, size=10, align="left", color=(0, 0, 0)):
        c.setFillColorRGB(*color)
        c.setFont(font, size)
        text_str = str(text) if text is not None else ""
        if align == "right":
            c.drawRightString(x, y, text_str)
        elif align == "center":
            c.drawCentredString(x, y, text_str)
        else:
            c.drawString(x, y, text_str)
        c.setFillColorRGB(0, 0, 0)

    # --- 1. HEADER ---
    c.setFillColorRGB(*PRIMARY)
    c.rect(0, height - 28 * mm, width, 28 * mm, fill=1, stroke=0)
    draw_text(width / 2, height - 15 * mm, STORE_NAME, font=FONT_BOLD_NAME, size=22, align="center", color=(1, 1, 1))
    draw_text(width / 2, height - 24 * mm, "Order Receipt", size=14, align="center", color=(1, 1, 1))

    # --- 2. ORDER META ---
    y = height - 40 * mm
    c.setFillColorRGB(*LIGHT_GRAY)
    c.rect(20 * mm, y - 10 * mm, width - 40 * mm, 16 * mm, fill=1, stroke=0)
    draw_text(25 * mm, y, f"Order ID: {order.id}", font=FONT_BOLD_NAME, size=9)
    created = order.created_at.strftime("%Y-%m-%d %H:%M") if order.created_at else ""
    draw_text(25 * mm, y - 6 * mm, f"Date: {created}", size=9)
    draw_text(190 * mm, y, f"Status: {order.order_status.upper()}", font=FONT_BOLD_NAME, size=9, align="right")
    draw_text(190 * mm, y - 6 * mm, f"Payment: {order.payment_status.upper()}", size=9, align="right")

    # --- 3. CUSTOMER ---
    y -= 22 * mm
    draw_text(20 * mm, y, "CUSTOMER DETAILS", font=FONT_BOLD_NAME, size=11, color=PRIMARY)
    y -= 7 * mm
    profile = order.profile
    for label, value in (
        ("Name:", profile.full_name if profile else "N/A"),
        ("Email:", profile.email if profile else "N/A"),
        ("Phone:", order.phone),
        ("Payment:", order.payment_method.replace("_", " ").title()),
    ):
        draw_text(25 * mm, y, label, font=FONT_BOLD_NAME, size=9)
        draw_text(50 * mm, y, value, size=9)
        y -= 5 * mm

    draw_text(25 * mm, y, "Address:", font=FONT_BOLD_NAME, size=9)
    address = order.shipping_address or ""
    # Wrap long addresses at a fixed width
    for start in range(0, max(len(address), 1), 80):
        draw_text(50 * mm, y, address[start:start + 80], size=9)
        y -= 5 * mm

    # --- 4. ITEMS TABLE ---
    y -= 6 * mm
    c.setFillColorRGB(*LIGHT_GRAY)
    c.rect(20 * mm, y - 2 * mm, 170 * mm, 8 * mm, fill=1, stroke=0)
    c.setFillColorRGB(0, 0, 0)
    c.setFont(FONT_BOLD_NAME, 9)
    c.drawString(22 * mm, y, "#")
    c.drawString(30 * mm, y, "Product")
    c.drawRightString(125 * mm, y, "Qty")
    c.drawRightString(155 * mm, y, "Unit price")
    c.drawRightString(188 * mm, y, "Subtotal")
    y -= 8 * mm

    c.setFont(FONT_REGULAR_NAME, 9)
    items_total = 0.0
    for idx, it in enumerate(order.items, start=1):
        c.drawString(22 * mm, y, str(idx))
        c.drawString(30 * mm, y, str(it.product_name)[:50])
        c.drawRightString(125 * mm, y, str(it.quantity))
        c.drawRightString(155 * mm, y, f"{CURRENCY} {it.unit_price:.2f}")
        c.drawRightString(188 * mm, y, f"{CURRENCY} {it.subtotal:.2f}")
        items_total += it.subtotal

        c.setLineWidth(0.1)
        c.line(20 * mm, y - 2 * mm, 190 * mm, y - 2 * mm)
        y -= 6 * mm

        # New page when the table runs off the bottom
        if y < 40 * mm:
            c.showPage()
            y = height - 20 * mm
            c.setFont(FONT_REGULAR_NAME, 9)

    # --- 5. TOTALS ---
    y -= 4 * mm
    if y < 40 * mm:
        c.showPage()
        y = height - 30 * mm

    delivery = round(order.total_amount - items_total, 2)
    c.setFont(FONT_REGULAR_NAME, 10)
    c.drawRightString(155 * mm, y, "Subtotal:")
    c.drawRightString(188 * mm, y, f"{CURRENCY} {items_total:.2f}")
    y -= 5 * mm
    c.drawRightString(155 * mm, y, "Delivery charge:")
    c.drawRightString(188 * mm, y, f"{CURRENCY} {delivery:.2f}")
    y -= 7 * mm
    c.setFont(FONT_BOLD_NAME, 12)
    c.drawRightString(155 * mm, y, "TOTAL:")
    c.drawRightString(188 * mm, y, f"{CURRENCY} {order.total_amount:.2f}")

    # --- 6. FOOTER ---
    draw_text(width / 2, 15 * mm, "Thank you for shopping with us!", size=8, align="center", color=(0.4, 0.4, 0.4))

    c.showPage()
    c.save()
    return buffer.getvalue()


def generate_orders_report_pdf(orders: Sequence[Order], generated_at: datetime = None) -> bytes:
    """
    Renders a summary of every order: totals box, then one row per order
    with customer, date, amount and status, phone and payment underneath.
    """
    generated_at = generated_at or datetime.now()
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4

    def draw_header():
        c.setFillColorRGB(*PRIMARY)
        c.rect(0, height - 28 * mm, width, 28 * mm, fill=1, stroke=0)
        c.setFillColorRGB(1, 1, 1)
        c.setFont(FONT_BOLD_NAME, 22)
        c.drawCentredString(width / 2, height - 15 * mm, STORE_NAME)
        c.setFont(FONT_REGULAR_NAME, 14)
        c.drawCentredString(width / 2, height - 24 * mm, "ORDER SUMMARY")
        c.setFillColorRGB(0, 0, 0)

    def draw_table_head(y):
        c.setFillColorRGB(*LIGHT_GRAY)
        c.rect(20 * mm, y - 2 * mm, 170 * mm, 8 * mm, fill=1, stroke=0)
        c.setFillColorRGB(0, 0, 0)
        c.setFont(FONT_BOLD_NAME, 9)
        c.drawString(22 * mm, y, "#")
        c.drawString(30 * mm, y, "Order ID")
        c.drawString(50 * mm, y, "Customer")
        c.drawString(100 * mm, y, "Date")
        c.drawRightString(160 * mm, y, "Amount")
        c.drawRightString(188 * mm, y, "Status")
        return y - 8 * mm

    draw_header()
    y = height - 36 * mm
    c.setFont(FONT_REGULAR_NAME, 9)
    c.drawString(20 * mm, y, f"Generated on: {generated_at.strftime('%Y-%m-%d %H:%M')}")

    # --- SUMMARY ---
    revenue = sum(o.total_amount for o in orders)
    delivered = sum(1 for o in orders if o.order_status == "delivered")
    pending = sum(1 for o in orders if o.order_status == "pending")
    processing = len(orders) - delivered - pending

    y -= 8 * mm
    c.setFillColorRGB(*LIGHT_GRAY)
    c.rect(20 * mm, y - 12 * mm, 170 * mm, 16 * mm, fill=1, stroke=0)
    c.setFillColorRGB(0, 0, 0)
    c.setFont(FONT_BOLD_NAME, 10)
    c.drawString(25 * mm, y, f"Total Orders: {len(orders)}")
    c.drawString(100 * mm, y, f"Total Revenue: {CURRENCY} {revenue:.2f}")
    c.setFont(FONT_REGULAR_NAME, 9)
    c.drawString(25 * mm, y - 7 * mm, f"Completed: {delivered}")
    c.drawString(70 * mm, y - 7 * mm, f"Pending: {pending}")
    c.drawString(115 * mm, y - 7 * mm, f"Processing: {processing}")

    # --- ORDERS TABLE ---
    y = draw_table_head(y - 22 * mm)
    for idx, order in enumerate(orders, start=1):
        # Each order takes two lines; start a new page before it would split
        if y < 35 * mm:
            c.showPage()
            draw_header()
            y = draw_table_head(height - 40 * mm)

        profile = order.profile
        created = order.created_at.strftime("%Y-%m-%d") if order.created_at else ""
        c.setFont(FONT_REGULAR_NAME, 9)
        c.drawString(22 * mm, y, str(idx))
        c.drawString(30 * mm, y, str(order.id))
        c.drawString(50 * mm, y, (profile.full_name if profile else "N/A")[:28])
        c.drawString(100 * mm, y, created)
        c.drawRightString(160 * mm, y, f"{CURRENCY} {order.total_amount:.2f}")
        c.drawRightString(188 * mm, y, order.order_status.upper())

        c.setFont(FONT_REGULAR_NAME, 8)
        c.setFillColorRGB(0.4, 0.4, 0.4)
        c.drawString(50 * mm, y - 4 * mm, f"Phone: {order.phone}")
        c.drawString(100 * mm, y - 4 * mm, f"Payment: {order.payment_status.upper()}")
        c.setFillColorRGB(0, 0, 0)

        c.setLineWidth(0.1)
        c.line(20 * mm, y - 6 * mm, 190 * mm, y - 6 * mm)
        y -= 11 * mm

    # --- FOOTER ---
    c.setFont(FONT_REGULAR_NAME, 8)
    c.setFillColorRGB(0.4, 0.4, 0.4)
    c.drawCentredString(width / 2, 15 * mm, "End of Report")

    c.showPage()
    c.save()
    return buffer.getvalue()
