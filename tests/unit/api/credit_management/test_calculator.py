from app.api.credit_management.calculator import (
    CreditBalance,
    calculate_balance,
    total_purchased_credits,
    total_used_credits,
)
from app.api.download.policy import MS_PER_DAY, active_records, remaining_label
from app.models import PaymentRecord, UserDownload

NOW = 1_700_000_000_000


def make_payment(credits, confirmed=True, purchase_time=NOW - MS_PER_DAY):
    return PaymentRecord(
        id=f"user-1#payment_{purchase_time}",
        user_id="user-1",
        user_email="user@example.com",
        plan_name="Starter",
        price_amount=9.99,
        credits=credits,
        purchase_time=purchase_time,
        confirmed=confirmed,
    )


def make_download(credits, download_time, preset_id="premium_warm_pop"):
    return UserDownload(
        id=f"user-1#{preset_id}#{download_time}",
        user_id="user-1",
        user_email="user@example.com",
        preset_id=preset_id,
        preset_category="premium",
        preset_key="warm_pop",
        preset_name="Warm Pop",
        file_name="Warm Pop",
        credits=credits,
        download_time=download_time,
        window_started_at=download_time,
    )


def test_balance_is_total_minus_used():
    balance = calculate_balance(
        [make_payment(100), make_payment(50)],
        [make_download(20, NOW - MS_PER_DAY), make_download(5, NOW - 2 * MS_PER_DAY)],
    )

    assert balance == CreditBalance(available=125, used=25, total=150)


def test_available_is_floored_at_zero():
    balance = calculate_balance([make_payment(10)], [make_download(30, NOW)])

    assert balance.available == 0
    assert balance.used == 30
    assert balance.total == 10


def test_missing_credits_count_as_zero():
    download = make_download(None, NOW)

    assert total_used_credits([download]) == 0
    assert total_purchased_credits([make_payment(0)]) == 0


def test_free_redownload_charge_is_not_counted():
    paid = make_download(20, NOW - MS_PER_DAY)
    free = make_download(0, NOW)
    free.window_started_at = paid.download_time

    assert calculate_balance([make_payment(100)], [paid, free]).used == 20


def test_unconfirmed_payments_are_ignored():
    assert total_purchased_credits([make_payment(100), make_payment(40, False)]) == 100


def test_ten_day_old_download_expires_and_releases_its_charge():
    payments = [make_payment(100, purchase_time=NOW - 11 * MS_PER_DAY)]
    old_download = make_download(20, NOW - 10 * MS_PER_DAY)

    assert calculate_balance(payments, [old_download]).dict() == {
        "available": 80,
        "used": 20,
        "total": 100,
    }
    assert remaining_label(old_download.download_time, NOW) == "Expired"

    remaining = active_records([old_download], NOW)
    assert remaining == []
    assert calculate_balance(payments, remaining).used == 0
