"""Generation orchestrators.

Provides the TextGenerator for single-shot calls and the BatchProcessor
and PerLayerApplier for sequential multi-item runs.
"""

from .batch import (
    BatchItem,
    BatchProcessor,
    BatchProgress,
    BatchResult,
    BatchState,
    ItemOutcome,
)
from .cleanup import clean_response
from .layer import CLEAN_OUTPUT_SUFFIX, PerLayerApplier, PerLayerResult
from .lib import GenerationRequest, TextGenerator, UsageRecord
from .retry import RetryConfig, RetryStrategy, classify_error

__all__ = [
    "TextGenerator",
    "GenerationRequest",
    "UsageRecord",
    # Multi-item runs
    "BatchProcessor",
    "BatchItem",
    "BatchState",
    "BatchProgress",
    "BatchResult",
    "ItemOutcome",
    "PerLayerApplier",
    "PerLayerResult",
    "CLEAN_OUTPUT_SUFFIX",
    "clean_response",
    # Retry
    "RetryConfig",
    "RetryStrategy",
    "classify_error",
]
