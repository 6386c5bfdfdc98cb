import smtplib
from html import escape
from email.message import EmailMessage

from flask import current_app


def send_email(to_email: str, subject: str, body: str, html: str = None):
    host = current_app.config.get("SMTP_HOST")
    port = current_app.config.get("SMTP_PORT", 587)
    username = current_app.config.get("SMTP_USERNAME")
    password = current_app.config.get("SMTP_PASSWORD")
    from_email = current_app.config.get("SMTP_FROM_EMAIL") or username
    use_tls = current_app.config.get("SMTP_USE_TLS", True)
    timeout = current_app.config.get("SMTP_TIMEOUT_SECONDS", 10)

    if not host or not from_email:
        return False, "Email not configured"

    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)
    if html:
        msg.add_alternative(html, subtype="html")

    try:
        with smtplib.SMTP(host, port, timeout=timeout) as server:
            if use_tls:
                server.starttls()
            if username and password:
                server.login(username, password)
            server.send_message(msg)
        return True, None
    except (smtplib.SMTPException, OSError) as exc:
        return False, str(exc)


def booking_email_subject(status_label: str, slot_date: str, slot_time: str) -> str:
    return f"Booking {status_label} - {slot_date} at {slot_time}"


def booking_email_body(name: str, slot_date: str, slot_time: str, order_id: str, status_label: str) -> str:
    return (
        f"Hi {name},\n\n"
        f"Your booking on {slot_date} at {slot_time} has been {status_label.lower()}!\n"
        f"Booking ID: {order_id}\n\n"
        "Thank you for using our service.\n\n"
        "Booking System"
    )


def booking_email_html(name: str, slot_date: str, slot_time: str, order_id: str, status_label: str) -> str:
    color = "#4CAF50" if status_label == "Confirmed" else "#f44336"
    name, order_id = escape(name), escape(order_id)
    return (
        '<div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">'
        f'<h2 style="color: {color};">Booking {status_label}!</h2>'
        f"<p>Hi <strong>{name}</strong>,</p>"
        f"<p>Your booking on <strong>{slot_date}</strong> at <strong>{slot_time}</strong> "
        f'has been <span style="color: {color}; font-weight: bold;">{status_label.lower()}</span>.</p>'
        f"<p><strong>Booking ID:</strong> {order_id}</p>"
        "<p>Thank you for using our service.</p>"
        "</div>"
    )


def send_booking_email(to_email: str, name: str, slot_date: str, slot_time: str, order_id: str, status_label: str):
    return send_email(
        to_email,
        booking_email_subject(status_label, slot_date, slot_time),
        booking_email_body(name, slot_date, slot_time, order_id, status_label),
        html=booking_email_html(name, slot_date, slot_time, order_id, status_label),
    )
