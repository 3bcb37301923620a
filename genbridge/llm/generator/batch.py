"""Sequential batch generation over a list of text items.

Each item gets its own prompt built from a shared instruction with
`{{name}}` and `{{content}}` placeholders. A failing item is recorded and
reported, and the batch moves on to the next one.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Sequence

from ...cancellation import CancellationSignal, is_cancellation
from ...config import EnvVar, get_environment
from ...errors import PluginError, invalid_config
from ...settings import GenerationSettings
from .cleanup import clean_response
from .lib import GenerationRequest, TextGenerator

logger = logging.getLogger(__name__)

COMPLETED_LABEL = "Completed"


class BatchState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


@dataclass(frozen=True)
class BatchItem:
    """One unit of work.

    Attributes:
        id: Caller-side identifier.
        label: Human-readable name, substituted for {{name}}.
        content: Current text, substituted for {{content}}.
    """

    id: str
    label: str
    content: str


@dataclass(frozen=True)
class BatchProgress:
    """Progress event emitted before each item and once at the end."""

    current_index: int
    total: int
    current_item_label: str
    percentage: int


@dataclass
class ItemOutcome:
    """Result of one item: cleaned text on success, error on failure."""

    item_id: str
    label: str
    text: str | None = None
    error: PluginError | None = None
    tokens: int = 0
    cost_usd: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None and self.text is not None


@dataclass
class BatchResult:
    """Aggregate result of a batch run.

    Attributes:
        successful: Items that produced text.
        failed: Items that raised an error.
        total_tokens: Tokens used by successful items.
        total_cost_usd: Cost of successful items.
        duration_ms: Wall time of the run.
        outcomes: Per-item outcomes in processing order.
        state: COMPLETED, or CANCELLED if the run stopped early.
    """

    successful: int = 0
    failed: int = 0
    total_tokens: int = 0
    total_cost_usd: float = 0.0
    duration_ms: int = 0
    outcomes: list[ItemOutcome] = field(default_factory=list)
    state: BatchState = BatchState.IDLE


ProgressSink = Callable[[BatchProgress], Any]
NotificationSink = Callable[[str, str], Any]


def build_item_prompt(instruction: str, item: BatchItem) -> str:
    """Substitute item placeholders into an instruction."""
    return instruction.replace("{{name}}", item.label).replace(
        "{{content}}", item.content
    )


def progress_event(index: int, total: int, label: str) -> BatchProgress:
    return BatchProgress(
        current_index=index,
        total=total,
        current_item_label=label,
        percentage=round(index / total * 100) if total else 100,
    )


class BatchProcessor:
    """Processes items one after another through a TextGenerator.

    States: IDLE -> RUNNING -> COMPLETED or CANCELLED.

    Example:
        >>> processor = BatchProcessor(generator, on_progress=print)
        >>> result = processor.process_batch(
        ...     items, "main", "Translate to French: {{content}}", settings
        ... )
        >>> print(result.successful, result.failed)
    """

    def __init__(
        self,
        generator: TextGenerator,
        *,
        delay: float | None = None,
        sleep: Callable[[float], Any] = time.sleep,
        on_progress: ProgressSink | None = None,
        on_notification: NotificationSink | None = None,
    ):
        """Initialize BatchProcessor.

        Args:
            generator: Generator used for every item.
            delay: Pause between items (seconds). Read from the environment if None.
            sleep: Blocking sleep function, replaceable in tests.
            on_progress: Receives BatchProgress events.
            on_notification: Receives (level, message) notifications.
        """
        self._generator = generator
        self._delay = get_environment(EnvVar.BATCH_DELAY, override=delay)
        self._sleep = sleep
        self._on_progress = on_progress
        self._on_notification = on_notification
        self._state = BatchState.IDLE

    @property
    def state(self) -> BatchState:
        return self._state

    def _emit_progress(self, event: BatchProgress) -> None:
        if self._on_progress is not None:
            self._on_progress(event)

    def _notify(self, level: str, message: str) -> None:
        if self._on_notification is not None:
            self._on_notification(level, message)

    def process_batch(
        self,
        items: Sequence[BatchItem],
        provider_id: str,
        instruction_prompt: str,
        settings: GenerationSettings | None = None,
        signal: CancellationSignal | None = None,
    ) -> BatchResult:
        """Generate text for every item in order.

        Args:
            items: Items to process.
            provider_id: Configured provider id.
            instruction_prompt: Instruction with optional placeholders.
            settings: Sampling settings for every item.
            signal: Checked before each item; cancellation stops the run
                and keeps the stats gathered so far.

        Returns:
            BatchResult with per-item outcomes.

        Raises:
            PluginError: With kind INVALID_CONFIG for an empty item list or
                a provider that cannot be resolved.
        """
        if not items:
            raise invalid_config("No items to process")
        self._generator.resolve(provider_id)

        total = len(items)
        result = BatchResult(state=BatchState.RUNNING)
        self._state = BatchState.RUNNING
        start = time.monotonic()
        logger.info(f"Starting batch: {total} items with {provider_id}")

        for index, item in enumerate(items):
            if signal is not None and signal.cancelled:
                self._state = BatchState.CANCELLED
                break

            self._emit_progress(progress_event(index, total, item.label))

            try:
                response = self._generator.generate(
                    GenerationRequest(
                        provider_id=provider_id,
                        prompt=build_item_prompt(instruction_prompt, item),
                        settings=settings,
                        signal=signal,
                    )
                )
            except PluginError as e:
                if is_cancellation(e):
                    self._state = BatchState.CANCELLED
                    break
                result.failed += 1
                result.outcomes.append(ItemOutcome(item.id, item.label, error=e))
                logger.warning(f"Failed to process {item.label!r}: {e.message}")
                self._notify("warning", f'Failed to process "{item.label}": {e.message}')
            else:
                text = clean_response(response.text, item.content)
                result.successful += 1
                result.total_tokens += response.tokens.total
                result.total_cost_usd += response.cost_usd
                result.outcomes.append(
                    ItemOutcome(
                        item.id,
                        item.label,
                        text=text,
                        tokens=response.tokens.total,
                        cost_usd=response.cost_usd,
                    )
                )
                logger.debug(f"Processed item {index + 1}/{total}: {item.label}")

            if index < total - 1:
                self._sleep(self._delay)

        if self._state != BatchState.CANCELLED:
            self._state = BatchState.COMPLETED
            self._emit_progress(progress_event(total, total, COMPLETED_LABEL))

        result.state = self._state
        result.duration_ms = round((time.monotonic() - start) * 1000)
        logger.info(
            f"Batch {self._state.value}: {result.successful} successful, "
            f"{result.failed} failed, {result.duration_ms}ms"
        )
        return result


__all__ = [
    "BatchState",
    "BatchItem",
    "BatchProgress",
    "ItemOutcome",
    "BatchResult",
    "BatchProcessor",
    "build_item_prompt",
    "progress_event",
    "COMPLETED_LABEL",
]
