from app.api.download.policy import (
    EXPIRED_LABEL,
    FREE_REDOWNLOAD_WINDOW_MS,
    MS_PER_DAY,
    MS_PER_HOUR,
    MS_PER_MINUTE,
    find_open_window,
    is_expired,
    remaining_label,
    remaining_ms,
)
from app.models import UserDownload

T = 1_700_000_000_000
G = FREE_REDOWNLOAD_WINDOW_MS


def make_download(credits, download_time, window_started_at=None):
    return UserDownload(
        id=f"user-1#vocal_chain_warm_pop#{download_time}",
        user_id="user-1",
        user_email="user@example.com",
        preset_id="vocal_chain_warm_pop",
        preset_category="vocal_chain",
        preset_key="warm_pop",
        preset_name="Warm Pop",
        file_name="Warm Pop",
        credits=credits,
        download_time=download_time,
        window_started_at=window_started_at or download_time,
    )


def test_grace_period_is_three_days():
    assert G == 259_200_000


def test_label_continuity_at_the_boundary():
    assert remaining_label(T, T + G - 1) != EXPIRED_LABEL
    assert remaining_label(T, T + G + 1) == EXPIRED_LABEL
    assert is_expired(T, T + G) is False
    assert is_expired(T, T + G + 1) is True


def test_label_formats():
    assert remaining_label(T, T) == "3 days 0 hours left"
    assert remaining_label(T, T + G - (2 * MS_PER_DAY + 5 * MS_PER_HOUR)) == (
        "2 days 5 hours left"
    )
    assert remaining_label(T, T + G - (MS_PER_HOUR + 3 * MS_PER_MINUTE)) == (
        "1 hour 3 minutes left"
    )
    assert remaining_label(T, T + G - 3 * MS_PER_MINUTE) == "3 minutes left"
    assert remaining_label(T, T + G - 1) == "Less than 1 minute left"


def test_remaining_time_decreases_monotonically():
    samples = [remaining_ms(T, T + offset) for offset in range(0, G + 2, G // 7)]

    assert samples == sorted(samples, reverse=True)
    assert remaining_ms(T, T + G + 1) == 0


def test_open_window_anchors_to_the_paid_download():
    paid = make_download(1, T)
    free = make_download(0, T + MS_PER_DAY, window_started_at=T)

    assert find_open_window([paid, free], "vocal_chain_warm_pop", T + 2 * MS_PER_DAY) is paid
    # the free redownload does not extend the window
    assert find_open_window([paid, free], "vocal_chain_warm_pop", T + G + 1) is None


def test_open_window_ignores_other_presets():
    paid = make_download(1, T)

    assert find_open_window([paid], "premium_other", T + 1) is None
