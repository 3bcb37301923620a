"""Per-layer apply: rewrite each text item in place with one instruction.

The instruction becomes the system prompt and each item's text is the
user message. Successful (source, result) pairs are fed back as few-shot
examples so later items follow the format of earlier ones.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Sequence

from ...cancellation import CancellationSignal, is_cancellation
from ...config import EnvVar, get_environment
from ...errors import ErrorKind, PluginError, invalid_config
from ...settings import GenerationSettings
from ..backend import FewShotMessage
from .batch import (
    COMPLETED_LABEL,
    BatchItem,
    BatchProgress,
    ItemOutcome,
    NotificationSink,
    ProgressSink,
    progress_event,
)
from .cleanup import clean_response
from .lib import GenerationRequest, TextGenerator

logger = logging.getLogger(__name__)

CLEAN_OUTPUT_SUFFIX = (
    "\n\nIMPORTANT: Output ONLY the result. "
    "No explanations, labels, quotes, or extra text."
)

LAYER_MAX_TOKENS = 200
FEW_SHOT_PAIRS = 2


def compose_system_prompt(instruction: str, system_instruction: str | None) -> str:
    """Merge the user instruction and a saved system instruction."""
    if system_instruction and instruction:
        return (
            f"{system_instruction}\n\nUser instruction: {instruction}"
            f"{CLEAN_OUTPUT_SUFFIX}"
        )
    if system_instruction:
        return f"{system_instruction}{CLEAN_OUTPUT_SUFFIX}"
    return f"{instruction}{CLEAN_OUTPUT_SUFFIX}"


def pin_layer_settings(settings: GenerationSettings, system_prompt: str) -> GenerationSettings:
    """Deterministic, short-output settings for in-place rewrites."""
    return replace(
        settings,
        system_prompt=system_prompt,
        temperature=0.0,
        max_tokens=min(settings.max_tokens or 2000, LAYER_MAX_TOKENS),
    )


@dataclass
class PerLayerResult:
    """Aggregate result of a per-layer run."""

    outcomes: list[ItemOutcome] = field(default_factory=list)
    applied: int = 0
    failed: int = 0
    total_tokens: int = 0
    total_cost_usd: float = 0.0
    duration_ms: int = 0
    cancelled: bool = False


class PerLayerApplier:
    """Applies one instruction to each item separately.

    Example:
        >>> applier = PerLayerApplier(generator)
        >>> result = applier.apply(items, "main", "Translate to German")
        >>> [o.text for o in result.outcomes]
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
        self._generator = generator
        self._delay = get_environment(EnvVar.LAYER_DELAY, override=delay)
        self._sleep = sleep
        self._on_progress = on_progress
        self._on_notification = on_notification

    def apply(
        self,
        items: Sequence[BatchItem],
        provider_id: str,
        instruction_prompt: str,
        system_instruction: str | None = None,
        settings: GenerationSettings | None = None,
        signal: CancellationSignal | None = None,
    ) -> PerLayerResult:
        """Rewrite every item with the instruction.

        Args:
            items: Items whose content is rewritten.
            provider_id: Configured provider id.
            instruction_prompt: What to do with each item.
            system_instruction: Saved system instruction to combine with it.
            settings: Base settings; temperature and max_tokens are pinned.
            signal: Checked before each item.

        Returns:
            PerLayerResult with one outcome per processed item.

        Raises:
            PluginError: With kind INVALID_CONFIG for an empty item list,
                an empty instruction, or an unresolvable provider.
        """
        if not items:
            raise invalid_config("No items to process")
        if not instruction_prompt and not system_instruction:
            raise invalid_config("An instruction or system instruction is required")
        self._generator.resolve(provider_id)

        system_prompt = compose_system_prompt(instruction_prompt, system_instruction)
        layer_settings = pin_layer_settings(
            settings or self._generator.default_settings(), system_prompt
        )
        few_shot: deque[tuple[str, str]] = deque(maxlen=FEW_SHOT_PAIRS)

        total = len(items)
        result = PerLayerResult()
        start = time.monotonic()
        self._notify("info", f"Processing {total} layer{'s' if total != 1 else ''}...")

        for index, item in enumerate(items):
            if signal is not None and signal.cancelled:
                result.cancelled = True
                break

            self._emit_progress(progress_event(index, total, item.label))
            examples = tuple(
                message
                for source, output in few_shot
                for message in (
                    FewShotMessage("user", source),
                    FewShotMessage("assistant", output),
                )
            )

            try:
                response = self._generator.generate(
                    GenerationRequest(
                        provider_id=provider_id,
                        prompt=item.content,
                        settings=layer_settings,
                        few_shot_pairs=examples,
                        signal=signal,
                    )
                )
                text = clean_response(response.text, item.content)
                if not text:
                    raise PluginError(
                        ErrorKind.API_ERROR,
                        f"Empty result for {item.label!r} after cleanup",
                        details={"reason": "empty_result", "raw": response.text},
                    )
            except PluginError as e:
                if is_cancellation(e):
                    result.cancelled = True
                    break
                result.failed += 1
                result.outcomes.append(ItemOutcome(item.id, item.label, error=e))
                logger.warning(f"Layer {item.label!r} failed: {e.message}")
                self._notify("warning", f'Failed to process "{item.label}": {e.message}')
            else:
                few_shot.append((item.content, text))
                result.applied += 1
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
                logger.debug(
                    f"Layer {index + 1}/{total} {item.label!r}: "
                    f"{item.content!r} -> {text!r}"
                )

            if index < total - 1:
                self._sleep(self._delay)

        if not result.cancelled:
            self._emit_progress(progress_event(total, total, COMPLETED_LABEL))

        result.duration_ms = round((time.monotonic() - start) * 1000)
        logger.info(
            f"Per-layer apply {'cancelled' if result.cancelled else 'completed'}: "
            f"{result.applied} applied, {result.failed} failed"
        )
        return result

    def _emit_progress(self, event: BatchProgress) -> None:
        if self._on_progress is not None:
            self._on_progress(event)

    def _notify(self, level: str, message: str) -> None:
        if self._on_notification is not None:
            self._on_notification(level, message)


__all__ = [
    "PerLayerApplier",
    "PerLayerResult",
    "CLEAN_OUTPUT_SUFFIX",
    "compose_system_prompt",
    "pin_layer_settings",
]
