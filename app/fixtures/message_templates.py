"""Message templates for provider notifications.

Placeholders use {{variable}} syntax and are filled by
``app.services.messaging.render_template``.
"""

BOOKING_NOTIFICATION = "booking_notification"
CANCELLATION_EMAIL = "cancellation_email"

# Keyed by template code, then display locale
MESSAGE_TEMPLATES = {
    # =========================================================================
    # New booking (in-app notification to the provider)
    # =========================================================================
    BOOKING_NOTIFICATION: {
        "pt": {
            "subject": None,
            "body": "Novo agendamento de {{user}} para {{date}}",
            "html_body": None,
        },
        "en": {
            "subject": None,
            "body": "New appointment from {{user}} for {{date}}",
            "html_body": None,
        },
    },
    # =========================================================================
    # Cancellation (email to the provider)
    # =========================================================================
    CANCELLATION_EMAIL: {
        "pt": {
            "subject": "Agendamento Cancelado",
            "body": """Olá, {{provider}}

Houve um cancelamento no seu agendamento.

Cliente: {{user}}
Data/hora: {{date}}

O horário está disponível para novos agendamentos.""",
            "html_body": """
<!DOCTYPE html>
<html>
<body style="font-family: Arial, Helvetica, sans-serif; line-height: 1.6; color: #333;">
    <strong>Olá, {{provider}}</strong>
    <p>Houve um cancelamento no seu agendamento, confira os detalhes abaixo:</p>
    <p>
        <strong>Cliente:</strong> {{user}}<br />
        <strong>Data/hora:</strong> {{date}}<br />
        <br />
        <small>O horário está disponível para novos agendamentos.</small>
    </p>
</body>
</html>
""",
        },
        "en": {
            "subject": "Appointment Cancelled",
            "body": """Hello, {{provider}}

An appointment has been cancelled.

Customer: {{user}}
Date/time: {{date}}

The slot is open for new bookings.""",
            "html_body": """
<!DOCTYPE html>
<html>
<body style="font-family: Arial, Helvetica, sans-serif; line-height: 1.6; color: #333;">
    <strong>Hello, {{provider}}</strong>
    <p>An appointment has been cancelled, see the details below:</p>
    <p>
        <strong>Customer:</strong> {{user}}<br />
        <strong>Date/time:</strong> {{date}}<br />
        <br />
        <small>The slot is open for new bookings.</small>
    </p>
</body>
</html>
""",
        },
    },
}
