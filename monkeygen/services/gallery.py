import logging

from monkeygen.models.schemas import GeneratedImage, OutcomeStatus, VariationOutcome

logger = logging.getLogger(__name__)


class ResultGallery:
    """
    Ordered outcomes of the current run, one per requested variation.

    Append-only between two ``reset`` calls: item ``i`` can only be started
    once items ``1..i-1`` exist, and each item is resolved exactly once.
    """

    def __init__(self):
        self._outcomes: list[VariationOutcome] = []
        self.total = 0

    def reset(self, total: int = 0) -> None:
        self._outcomes = []
        self.total = total

    def begin(self, index: int, prompt: str) -> VariationOutcome:
        expected = len(self._outcomes) + 1
        if index != expected:
            raise ValueError(f"Outcome #{index} started out of order, expected #{expected}")
        outcome = VariationOutcome(index=index, prompt=prompt)
        self._outcomes.append(outcome)
        return outcome

    def resolve(
        self,
        index: int,
        image: GeneratedImage | None = None,
        error: str | None = None,
    ) -> VariationOutcome:
        outcome = self.get(index)
        if outcome is None:
            raise ValueError(f"Outcome #{index} was never started")
        if outcome.resolved:
            raise ValueError(f"Outcome #{index} already resolved")
        outcome.image = image
        outcome.error = None if image else (error or "Generation failed")
        outcome.resolved = True
        return outcome

    def get(self, index: int) -> VariationOutcome | None:
        if 1 <= index <= len(self._outcomes):
            return self._outcomes[index - 1]
        return None

    def status_of(self, index: int) -> OutcomeStatus:
        outcome = self.get(index)
        if outcome is None:
            return OutcomeStatus.PENDING
        return outcome.status

    @property
    def outcomes(self) -> list[VariationOutcome]:
        return list(self._outcomes)

    @property
    def succeeded_count(self) -> int:
        return sum(1 for o in self._outcomes if o.status == OutcomeStatus.SUCCEEDED)

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self._outcomes if o.status == OutcomeStatus.FAILED)

    @property
    def pending_count(self) -> int:
        return max(self.total - len(self._outcomes), 0)

    def __len__(self) -> int:
        return len(self._outcomes)
