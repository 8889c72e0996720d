"""Terminal progress display."""

from __future__ import annotations

from tqdm import tqdm


class ProgressBar:
    """Block-level progress bar driven by absolute completion counts."""

    def __init__(
        self,
        total: int,
        label: str = "Translating",
        *,
        disable: bool = False,
    ) -> None:
        self.total = total
        self.value = 0
        self._bar = tqdm(
            total=total,
            desc=label,
            unit="block",
            dynamic_ncols=True,
            disable=disable,
        )

    def update(self, value: int) -> None:
        # Workers report running totals; tqdm wants increments.
        delta = value - self.value
        if delta > 0:
            self._bar.update(delta)
            self.value = value

    def close(self) -> None:
        self._bar.close()
