from dataclasses import asdict, dataclass
from typing import Dict, Iterable

from app.models import PaymentRecord, UserDownload


@dataclass(frozen=True)
class CreditBalance:
    available: int
    used: int
    total: int

    def dict(self) -> Dict[str, int]:
        return asdict(self)


def total_purchased_credits(payments: Iterable[PaymentRecord]) -> int:
    return sum(
        payment.credits or 0
        for payment in payments
        if payment.confirmed is not False
    )


def total_used_credits(downloads: Iterable[UserDownload]) -> int:
    # free redownloads are stored with a zero charge, every positive charge stands
    return sum(max(download.credits or 0, 0) for download in downloads)


def calculate_balance(
    payments: Iterable[PaymentRecord], downloads: Iterable[UserDownload]
) -> CreditBalance:
    """Fold the payment and download ledgers into a balance, floored at zero."""
    total = total_purchased_credits(payments)
    used = total_used_credits(downloads)
    return CreditBalance(available=max(0, total - used), used=used, total=total)
