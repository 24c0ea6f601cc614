"""
Prompt Driver

Decides which keystrokes to send to an interactive exporter based on the text
it prints. The supervisor only knows the ``PromptDriver`` interface, so a
driver can be swapped per exporter version (or replaced by ``NullPromptDriver``
for exporters run in non-interactive mode) without touching the rest of the
pipeline.

Public API:
    PromptDriver: Interface, ``on_output_chunk(text) -> List[str]``
    PromptRule: One marker set and the keystroke that answers it
    MarkerPromptDriver: Marker matching with per-rule dedupe latch
    NullPromptDriver: Never answers anything
    default_rules: The three rules for terraformer-style menus
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

import structlog

logger = structlog.get_logger(__name__)


class PromptDriver(ABC):
    """Maps exporter output to keystrokes."""

    @abstractmethod
    def on_output_chunk(self, text: str) -> List[str]:
        """Consume one stdout chunk.

        Returns:
            Keystrokes (without newline) to send, in order. Usually empty.
        """


class NullPromptDriver(PromptDriver):
    def on_output_chunk(self, text: str) -> List[str]:
        return []


@dataclass(frozen=True)
class PromptRule:
    """Fires ``key`` once every marker has been seen since it last fired."""

    name: str
    markers: Tuple[str, ...]
    key: str


def default_rules(
    menu_marker: str = "show menu",
    continue_marker: str = "continue",
    quit_markers: Sequence[str] = ("quit", "import completed"),
    import_key: str = "w",
    acknowledge_key: str = "c",
    quit_key: str = "q",
) -> List[PromptRule]:
    return [
        PromptRule("import_selection", (menu_marker,), import_key),
        PromptRule("acknowledge", (continue_marker,), acknowledge_key),
        PromptRule("quit", tuple(quit_markers), quit_key),
    ]


class MarkerPromptDriver(PromptDriver):
    """
    Heuristic prompt state machine over unstructured exporter output.

    Rules are independent and level-triggered: a prompt that shows up again
    is answered again. Markers are matched case-insensitively, may arrive
    in different chunks and may themselves be split across two chunks. A rule that fired less than ``dedupe_window`` seconds
    ago stays latched, since one prompt is often rendered across several
    chunks.

    Args:
        rules: Rules to evaluate, in the order their keystrokes are emitted
        dedupe_window: Seconds a rule stays latched after firing
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        rules: Optional[Sequence[PromptRule]] = None,
        dedupe_window: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.rules = list(rules) if rules is not None else default_rules()
        self.dedupe_window = dedupe_window
        self._clock = clock
        self._seen: Dict[str, Set[str]] = {rule.name: set() for rule in self.rules}
        self._last_fired: Dict[str, float] = {}
        # enough of the previous chunk to complete any marker split across reads
        self._tail_size = max(
            (len(marker) for rule in self.rules for marker in rule.markers), default=1
        ) - 1
        self._tail = ""
        self.sent: List[str] = []

    def on_output_chunk(self, text: str) -> List[str]:
        if not text:
            return []
        window = self._tail + text.lower()
        new_from = len(self._tail)
        self._tail = window[-self._tail_size:] if self._tail_size else ""
        now = self._clock()
        keys: List[str] = []

        for rule in self.rules:
            seen = self._seen[rule.name]
            for marker in rule.markers:
                # only matches ending in the new text count
                start = max(0, new_from - len(marker) + 1)
                if window.find(marker.lower(), start) != -1:
                    seen.add(marker)
            if len(seen) < len(rule.markers):
                continue

            seen.clear()
            last = self._last_fired.get(rule.name)
            if last is not None and now - last < self.dedupe_window:
                logger.debug("prompt_suppressed", rule=rule.name, since_last=now - last)
                continue

            self._last_fired[rule.name] = now
            keys.append(rule.key)
            logger.info("prompt_detected", rule=rule.name, key=rule.key)

        self.sent.extend(keys)
        return keys


__all__ = [
    "MarkerPromptDriver",
    "NullPromptDriver",
    "PromptDriver",
    "PromptRule",
    "default_rules",
]
