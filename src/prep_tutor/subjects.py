"""Per-subject ordering and answer validation."""
import random
import re
from datetime import datetime

from prep_tutor.errors import ValidationError
from prep_tutor.models import Item, Rating, ReviewCard, ReviewMode, Subject
from prep_tutor.sm2 import order_due

MAX_ANSWER_LENGTH = 1000
NUMERIC_RE = re.compile(r"^-?\d+(\.\d+)?(/-?\d+(\.\d+)?)?$")


class SubjectStrategy:
    """Default behaviour: graded answers, items in provider order."""

    subject = None
    uses_scheduler = False

    def order(self, items: list[Item], cards: dict) -> list[Item]:
        return list(items)

    def mode_for(self, item: Item) -> str:
        return "graded"

    def validate(self, item: Item, value) -> str:
        """Return the normalized answer or raise ValidationError."""
        if value is None or not str(value).strip():
            raise ValidationError("Answer cannot be empty", field="answer")
        answer = str(value).strip()
        if len(answer) > MAX_ANSWER_LENGTH:
            raise ValidationError(
                f"Answer is longer than {MAX_ANSWER_LENGTH} characters", field="answer",
            )
        if item.kind == "multiple_choice":
            labels = {label.lower() for label in item.choices}
            if answer.lower() not in labels:
                raise ValidationError(
                    f"Choose one of: {', '.join(sorted(labels))}", field="answer",
                )
            return answer.lower()
        if item.kind == "numeric" and not NUMERIC_RE.match(answer.replace(" ", "")):
            raise ValidationError("Enter a number or a fraction like 3/4", field="answer")
        return answer


class MathStrategy(SubjectStrategy):
    subject = Subject.MATH


class EnglishStrategy(SubjectStrategy):
    subject = Subject.ENGLISH


class VocabularyStrategy(SubjectStrategy):
    """Due-ordered words, self-rated flashcards and graded quiz questions."""

    subject = Subject.VOCABULARY
    uses_scheduler = True

    def __init__(self, review_mode=ReviewMode.MIXED, rng: random.Random = None):
        self.review_mode = ReviewMode(review_mode)
        self.rng = rng or random.Random()
        self._modes: dict[str, str] = {}

    def ensure_cards(self, items: list[Item], cards: dict, now: datetime) -> dict:
        """Add a default card for every item the user has not seen yet."""
        for item in items:
            if item.id not in cards:
                cards[item.id] = ReviewCard.new(item.id, now)
        return cards

    def order(self, items: list[Item], cards: dict) -> list[Item]:
        by_id = {item.id: item for item in items}
        ordered = order_due([cards[item.id] for item in items])
        return [by_id[card.item_id] for card in ordered]

    def mode_for(self, item: Item) -> str:
        if self.review_mode != ReviewMode.MIXED:
            return self.review_mode.value
        if item.id not in self._modes:
            if not self._modes:
                mode = ReviewMode.FLASHCARDS.value
            else:
                mode = ReviewMode.FLASHCARDS.value if self.rng.random() > 0.5 else ReviewMode.QUIZ.value
            self._modes[item.id] = mode
        return self._modes[item.id]

    def validate(self, item: Item, value):
        if self.mode_for(item) == ReviewMode.FLASHCARDS.value:
            if isinstance(value, Rating):
                return value
            try:
                return Rating(str(value).strip().lower())
            except ValueError:
                raise ValidationError(
                    "Rate the card: again, hard, medium or easy", field="rating",
                ) from None
        return super().validate(item, value)


def strategy_for(subject, review_mode=ReviewMode.MIXED, rng: random.Random = None) -> SubjectStrategy:
    subject = Subject(subject)
    if subject == Subject.VOCABULARY:
        return VocabularyStrategy(review_mode, rng=rng)
    if subject == Subject.ENGLISH:
        return EnglishStrategy()
    return MathStrategy()
