"""Batching of subtitle blocks with trailing context windows."""

from __future__ import annotations

from typing import List, Sequence

from .errors import InvalidOptionsError
from .structures import Batch, SubtitleBlock

DEFAULT_BATCH_SIZE = 25
DEFAULT_CONTEXT_WINDOW = 3


class BatchBuilder:
    """Cuts blocks into fixed-size batches carrying preceding context."""

    def __init__(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
        context_window: int = DEFAULT_CONTEXT_WINDOW,
    ) -> None:
        if batch_size <= 0:
            raise InvalidOptionsError(
                f"Batch size must be a positive integer (got {batch_size})."
            )
        if context_window < 0:
            raise InvalidOptionsError(
                f"Context window cannot be negative (got {context_window})."
            )
        self.batch_size = batch_size
        self.context_window = context_window

    def build(self, blocks: Sequence[SubtitleBlock]) -> List[Batch]:
        batches: List[Batch] = []

        for start in range(0, len(blocks), self.batch_size):
            end = min(start + self.batch_size, len(blocks))
            if start > 0:
                context_start = max(0, start - self.context_window)
                context = list(blocks[context_start:start])
            else:
                context = []
            batches.append(
                Batch(
                    blocks=list(blocks[start:end]),
                    context=context,
                    index=len(batches),
                )
            )

        return batches


def create_batches(
    blocks: Sequence[SubtitleBlock],
    batch_size: int = DEFAULT_BATCH_SIZE,
    context_window: int = DEFAULT_CONTEXT_WINDOW,
) -> List[Batch]:
    """Split blocks into batches; see :class:`BatchBuilder`."""

    return BatchBuilder(batch_size, context_window).build(blocks)
