import logging
import queue
import threading
from typing import Callable, Optional, Sequence

import pyttsx3

logger = logging.getLogger(__name__)


# Used when present; otherwise the platform default voice speaks
PREFERRED_VOICES = ("Samantha", "Victoria", "Ava", "Moira", "Karen", "Tessa", "Kathy")


def init_tts(rate: int = 165, volume: float = 1.0, preferred: Sequence[str] = PREFERRED_VOICES):
    engine = pyttsx3.init()
    engine.setProperty("rate", rate)
    engine.setProperty("volume", volume)

    wanted = [name.lower() for name in preferred]
    match = next(
        (v for v in engine.getProperty("voices") if any(w in (v.name or "").lower() for w in wanted)),
        None,
    )
    if match is not None:
        engine.setProperty("voice", match.id)
    return engine


class Announcer:
    """
    Speaks guidance announcements on a background worker so the fix loop
    never blocks on audio.

    Args:
        engine_factory: Builds the speech engine inside the worker thread.
    """

    def __init__(self, engine_factory: Optional[Callable[[], object]] = None) -> None:
        self._engine_factory = engine_factory or init_tts
        self._queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self._thread = threading.Thread(target=self._worker, daemon=True)
        self._thread.start()

    def _worker(self) -> None:
        try:
            engine = self._engine_factory()
        except Exception as e:
            logger.error(f"TTS engine unavailable, announcements are dropped: {e}")
            engine = None
        while True:
            text = self._queue.get()
            try:
                if text is None:
                    break
                if engine is None:
                    continue
                engine.say(text)
                engine.runAndWait()
            except Exception as e:
                logger.error(f"TTS error: {e}")
            finally:
                self._queue.task_done()

    def say(self, text: str) -> None:
        text = (text or "").strip()
        if text:
            self._queue.put(text)

    def wait(self) -> None:
        """Block until everything queued so far has been spoken."""
        self._queue.join()

    def close(self) -> None:
        self._queue.put(None)
        self._thread.join(timeout=2.0)
