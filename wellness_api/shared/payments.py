"""Payment gateway callback payload shared by bookings and orders"""

from typing import Optional

from pydantic import BaseModel


class PaymentResult(BaseModel):
    """Outcome reported by the payment gateway"""

    success: bool
    transactionId: Optional[str] = None
