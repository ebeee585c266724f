"""Payment details captured at checkout.

No gateway is involved: a card order keeps only the last four digits and the
cardholder name, and a branch payment gets a reference the customer quotes
at the counter. Administrators verify payment through the status workflow.
"""

import re
import secrets
from datetime import UTC, datetime

from protean.exceptions import ValidationError

from printshop.order.order import PaymentMethod, PaymentStatus


def branch_reference(year: int | None = None) -> str:
    """``BP-{YYYY}-{7 random digits}``."""
    year = year or datetime.now(UTC).year
    return f"BP-{year}-{1_000_000 + secrets.randbelow(9_000_000)}"


def build_payment(method, card_last_four=None, cardholder_name=None, preferred_branch=None) -> dict:
    """Order payment fields for the chosen method."""
    try:
        payment_method = PaymentMethod(method)
    except ValueError:
        raise ValidationError({"payment_method": [f"Unsupported payment method: {method}"]}) from None

    payment = {
        "payment_method": payment_method.value,
        "payment_status": PaymentStatus.PENDING.value,
    }

    if payment_method == PaymentMethod.CREDIT_CARD:
        if not card_last_four or not re.fullmatch(r"\d{4}", card_last_four):
            raise ValidationError({"card_last_four": ["Exactly four card digits are required"]})
        if not cardholder_name:
            raise ValidationError({"cardholder_name": ["Cardholder name is required"]})
        payment.update(card_last_four=card_last_four, cardholder_name=cardholder_name)
    else:
        if not preferred_branch:
            raise ValidationError({"preferred_branch": ["Preferred branch is required for branch payment"]})
        payment.update(preferred_branch=preferred_branch, payment_reference=branch_reference())

    return payment
