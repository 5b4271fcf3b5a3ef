"""SM-2 spaced repetition scheduling for vocabulary review cards."""
from datetime import datetime, timedelta

from prep_tutor.models import Rating, ReviewCard

QUALITY = {
    Rating.AGAIN: 0,
    Rating.HARD: 2,
    Rating.MEDIUM: 3,
    Rating.EASY: 5,
}

MIN_EASE_FACTOR = 1.3


def quality_for(rating) -> int:
    return QUALITY[Rating(rating)]


def sm2_update(
    quality: int,
    repetitions: int,
    ease_factor: float,
    interval: int,
) -> dict:
    """Calculate next review parameters using SM-2.

    Args:
        quality: Rating 0-5 (0=complete blackout, 5=perfect)
        repetitions: Number of consecutive correct reviews
        ease_factor: Current ease factor (minimum 1.3)
        interval: Current interval in days

    Returns:
        Dict with updated interval, repetitions, ease_factor.
    """
    if quality < 3:
        # Incorrect: reset, ease factor untouched
        return {"interval": 1, "repetitions": 0, "ease_factor": ease_factor}

    new_repetitions = repetitions + 1
    new_ef = ease_factor + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02))
    new_ef = round(max(MIN_EASE_FACTOR, new_ef), 2)

    if new_repetitions == 1:
        new_interval = 1
    elif new_repetitions == 2:
        new_interval = 6
    else:
        # Previous interval scaled by the updated ease factor
        new_interval = round(interval * new_ef)

    return {
        "interval": new_interval,
        "repetitions": new_repetitions,
        "ease_factor": new_ef,
    }


def rate(card: ReviewCard, rating, now: datetime) -> ReviewCard:
    """Return the card's next review state. The input card is not modified."""
    updated = sm2_update(
        quality=quality_for(rating),
        repetitions=card.repetitions,
        ease_factor=card.ease_factor,
        interval=card.interval_days,
    )
    return card.copy(
        interval_days=updated["interval"],
        repetitions=updated["repetitions"],
        ease_factor=updated["ease_factor"],
        next_review_date=now + timedelta(days=updated["interval"]),
        last_reviewed_at=now,
    )


def order_due(cards) -> list:
    """Most overdue first. Stable: equal dates keep their input order."""
    return sorted(cards, key=lambda c: c.next_review_date)


def is_due(card: ReviewCard, now: datetime) -> bool:
    return card.next_review_date <= now


def due_cards(cards, now: datetime) -> list:
    return [c for c in order_due(cards) if is_due(c, now)]
