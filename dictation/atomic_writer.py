"""
Exactly-once transcript writes.

Readers of the transcripts bucket must only ever see a complete transcript.
Two strategies are available and one is chosen per deployment:

* ``create-only`` writes straight to the final key with a create-only
  precondition.  A second write for the same key is rejected by the store,
  which turns duplicate triggers into no-ops.
* ``temp-then-promote`` writes a uniquely named temporary object, deletes
  any previous transcript, copies the temporary object over the final key
  and removes the temporary object.  This replaces a stale transcript.

Both rely on single-object writes and copies being atomic in the store.
The store only needs ``save_text``, ``copy`` and ``delete`` as provided by
:class:`dictation.storage.GcsBucket`.
"""

import enum
import logging
import uuid
from dataclasses import dataclass

from .exceptions import ObjectExistsError

logger = logging.getLogger(__name__)


class WriteStrategy(str, enum.Enum):
    CREATE_ONLY = "create-only"
    TEMP_THEN_PROMOTE = "temp-then-promote"


class WriteState(str, enum.Enum):
    ABSENT = "absent"
    TEMP_WRITTEN = "temp-written"
    PROMOTED = "promoted"
    TEMP_CLEANED = "temp-cleaned"


@dataclass(frozen=True)
class WriteOutcome:
    key: str
    written: bool


class TempPromotion:
    """One temp-then-promote write of a single key.

    The steps must run in order; calling one out of order raises
    ``RuntimeError``.  :meth:`discard` may be called from any state and
    removes the temporary object if one was written.
    """

    def __init__(self, store, key: str):
        self.store = store
        self.key = key
        self.temp_key = f"{key}.{uuid.uuid4().hex}.tmp"
        self.state = WriteState.ABSENT

    def _expect(self, state: WriteState) -> None:
        if self.state is not state:
            raise RuntimeError(f"cannot continue {self.key}: state is {self.state.value}, expected {state.value}")

    def write_temp(self, text: str) -> None:
        self._expect(WriteState.ABSENT)
        self.store.save_text(self.temp_key, text, create_only=True)
        self.state = WriteState.TEMP_WRITTEN

    def promote(self) -> None:
        self._expect(WriteState.TEMP_WRITTEN)
        if self.store.delete(self.key):
            logger.info("Replaced previous transcript %s", self.key)
        self.store.copy(self.temp_key, self.key, create_only=True)
        self.state = WriteState.PROMOTED

    def clean(self) -> None:
        self._expect(WriteState.PROMOTED)
        self.store.delete(self.temp_key)
        self.state = WriteState.TEMP_CLEANED

    def discard(self) -> None:
        if self.state in (WriteState.TEMP_WRITTEN, WriteState.PROMOTED):
            self.store.delete(self.temp_key)
            self.state = WriteState.TEMP_CLEANED


class AtomicTextWriter:
    """Writes a transcript with the deployment's :class:`WriteStrategy`."""

    def __init__(self, store, strategy: WriteStrategy = WriteStrategy.TEMP_THEN_PROMOTE):
        self.store = store
        self.strategy = WriteStrategy(strategy)

    def write(self, key: str, text: str) -> WriteOutcome:
        """Write ``text`` to ``key``.

        Returns:
            ``WriteOutcome(written=False)`` when another writer already
            created ``key``.  Store errors propagate.
        """
        if self.strategy is WriteStrategy.CREATE_ONLY:
            try:
                self.store.save_text(key, text, create_only=True)
            except ObjectExistsError:
                logger.info("Transcript %s already exists; skipping", key)
                return WriteOutcome(key, written=False)
            return WriteOutcome(key, written=True)

        promotion = TempPromotion(self.store, key)
        try:
            promotion.write_temp(text)
            try:
                promotion.promote()
            except ObjectExistsError:
                # A concurrent writer promoted between our delete and copy.
                logger.info("Transcript %s was written concurrently; keeping it", key)
                return WriteOutcome(key, written=False)
            promotion.clean()
        finally:
            promotion.discard()
        return WriteOutcome(key, written=True)
