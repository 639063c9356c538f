"""Background jobs for Slotbook.

- Cancellation email to the provider of a cancelled appointment
"""

from app.tasks.cancellation_mail import run_cancellation_mail_job

__all__ = [
    "run_cancellation_mail_job",
]
