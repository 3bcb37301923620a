"""CLI entry point for genbridge.

This module acts as the central entry point for the project's CLI tools.
It delegates each command to the generation orchestrators.
"""

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from genbridge.config import EnvVar, get_environment, get_settings_path
from genbridge.core import get_logger, setup_logging
from genbridge.errors import PluginError, invalid_config

# Load environment variables from .env file
load_dotenv()

logger = get_logger("cli")


# =============================================================================
# Shared helpers
# =============================================================================


def _add_settings_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--settings",
        "-s",
        type=Path,
        default=None,
        help="Provider settings JSON file (default: GENBRIDGE_SETTINGS_PATH)",
    )


def _build_generator(args: argparse.Namespace):
    """Create a TextGenerator over the selected settings file."""
    from genbridge.llm import TextGenerator
    from genbridge.settings import JsonFileSettingsStore

    path = get_settings_path(args.settings)
    if path is None:
        raise invalid_config(
            "No settings file given (use --settings or GENBRIDGE_SETTINGS_PATH)"
        )
    return TextGenerator(JsonFileSettingsStore(path))


def _load_items(path: Path):
    """Read batch items from a JSON file.

    The file holds a list whose entries are either strings or objects
    with "content" and optional "id" and "label" keys.
    """
    from genbridge.llm import BatchItem

    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON list")

    items = []
    for index, entry in enumerate(data, start=1):
        if isinstance(entry, str):
            entry = {"content": entry}
        item_id = str(entry.get("id", index))
        items.append(
            BatchItem(
                id=item_id,
                label=str(entry.get("label", item_id)),
                content=str(entry["content"]),
            )
        )
    return items


def _generation_settings(args: argparse.Namespace, generator):
    """Store defaults with command-line overrides applied."""
    from dataclasses import replace

    settings = generator.default_settings()
    if getattr(args, "temperature", None) is not None:
        settings = replace(settings, temperature=args.temperature)
    if getattr(args, "max_tokens", None) is not None:
        settings = replace(settings, max_tokens=args.max_tokens)
    return settings


def _print_outcomes(outcomes) -> None:
    rows = [
        {
            "id": o.item_id,
            "label": o.label,
            "text": o.text,
            "error": o.error.message if o.error else None,
        }
        for o in outcomes
    ]
    print(json.dumps(rows, ensure_ascii=False, indent=2))


def _log_progress(event) -> None:
    logger.info(
        f"[{event.percentage:3d}%] {event.current_index}/{event.total} "
        f"{event.current_item_label}"
    )


def _log_notification(level: str, message: str) -> None:
    if level == "warning":
        logger.warning(message)
    else:
        logger.info(message)


# =============================================================================
# Commands
# =============================================================================


def cmd_generate(args: argparse.Namespace) -> int:
    """Handle the generate command."""
    from genbridge.cancellation import CancellationSignal
    from genbridge.llm import GenerationRequest

    signal = CancellationSignal.after(args.timeout) if args.timeout else None
    try:
        with _build_generator(args) as generator:
            response = generator.generate(
                GenerationRequest(
                    provider_id=args.provider,
                    prompt=args.prompt,
                    settings=_generation_settings(args, generator),
                    system_prompt=args.system,
                    signal=signal,
                )
            )
    except PluginError as e:
        logger.error(f"Generation failed ({e.kind.value}): {e.message}")
        return 1
    finally:
        if signal is not None:
            signal.dispose()

    print(response.text)
    logger.info(
        f"Stats: {response.tokens.input}+{response.tokens.output} tokens, "
        f"${response.cost_usd:.6f}, model={response.model}"
        f"{' (cached)' if response.cached else ''}"
    )
    return 0


def cmd_batch(args: argparse.Namespace) -> int:
    """Handle the batch command."""
    from genbridge.llm import BatchProcessor

    try:
        items = _load_items(args.items)
        with _build_generator(args) as generator:
            processor = BatchProcessor(
                generator,
                on_progress=_log_progress,
                on_notification=_log_notification,
            )
            result = processor.process_batch(
                items,
                args.provider,
                args.instruction,
                _generation_settings(args, generator),
            )
    except (PluginError, OSError, ValueError, KeyError) as e:
        logger.error(f"Batch failed: {e}")
        return 1

    _print_outcomes(result.outcomes)
    logger.info(
        f"Stats: {result.successful} successful, {result.failed} failed, "
        f"{result.total_tokens} tokens, ${result.total_cost_usd:.6f}, "
        f"{result.duration_ms}ms"
    )
    return 0 if result.failed == 0 else 2


def cmd_apply(args: argparse.Namespace) -> int:
    """Handle the per-layer apply command."""
    from genbridge.llm import PerLayerApplier

    try:
        items = _load_items(args.items)
        with _build_generator(args) as generator:
            applier = PerLayerApplier(
                generator,
                on_progress=_log_progress,
                on_notification=_log_notification,
            )
            result = applier.apply(
                items,
                args.provider,
                args.instruction,
                system_instruction=args.system,
                settings=_generation_settings(args, generator),
            )
    except (PluginError, OSError, ValueError, KeyError) as e:
        logger.error(f"Apply failed: {e}")
        return 1

    _print_outcomes(result.outcomes)
    logger.info(
        f"Stats: {result.applied} applied, {result.failed} failed, "
        f"{result.total_tokens} tokens, ${result.total_cost_usd:.6f}"
    )
    return 0 if result.failed == 0 else 2


def cmd_list_models(args: argparse.Namespace) -> int:
    """Handle the list models command."""
    from genbridge.llm import ProviderModel, WireFamily

    families = [WireFamily(args.family)] if args.family else list(WireFamily)
    logger.info("Available provider models:")
    for family in families:
        models = ProviderModel.list_by_family(family)
        if models:
            logger.info(f"\n  {family.value}:")
            for model in models:
                spec = model.capability
                tags = []
                if spec.is_local:
                    tags.append("local")
                if spec.requires_relay:
                    tags.append("relay")
                if spec.supports_vision:
                    tags.append("vision")
                suffix = f" ({', '.join(tags)})" if tags else ""
                logger.info(f"    {spec.id}: {spec.model}{suffix}")
    return 0


# =============================================================================
# Parser
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    from genbridge.llm import WireFamily

    parser = argparse.ArgumentParser(
        prog="python .",
        description="Generate text through configured LLM providers",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # generate command
    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate text from a single prompt",
    )
    generate_parser.add_argument("prompt", type=str, help="Prompt text")
    generate_parser.add_argument(
        "--provider", "-p", required=True, help="Configured provider id"
    )
    generate_parser.add_argument(
        "--system", type=str, default=None, help="System prompt"
    )
    generate_parser.add_argument(
        "--temperature", type=float, default=None, help="Sampling temperature"
    )
    generate_parser.add_argument(
        "--max-tokens", type=int, default=None, help="Maximum tokens to generate"
    )
    generate_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Cancel the request after this many seconds",
    )
    _add_settings_argument(generate_parser)
    generate_parser.set_defaults(func=cmd_generate)

    # batch command
    batch_parser = subparsers.add_parser(
        "batch",
        help="Run one instruction over every item of a JSON list",
    )
    batch_parser.add_argument(
        "instruction",
        type=str,
        help="Instruction; {{name}} and {{content}} are replaced per item",
    )
    batch_parser.add_argument(
        "--provider", "-p", required=True, help="Configured provider id"
    )
    batch_parser.add_argument(
        "--items", "-i", type=Path, required=True, help="JSON file with items"
    )
    batch_parser.add_argument("--temperature", type=float, default=None)
    batch_parser.add_argument("--max-tokens", type=int, default=None)
    _add_settings_argument(batch_parser)
    batch_parser.set_defaults(func=cmd_batch)

    # apply command
    apply_parser = subparsers.add_parser(
        "apply",
        help="Rewrite each item in place with one instruction",
    )
    apply_parser.add_argument("instruction", type=str, help="Instruction text")
    apply_parser.add_argument(
        "--provider", "-p", required=True, help="Configured provider id"
    )
    apply_parser.add_argument(
        "--items", "-i", type=Path, required=True, help="JSON file with items"
    )
    apply_parser.add_argument(
        "--system", type=str, default=None, help="Saved system instruction"
    )
    _add_settings_argument(apply_parser)
    apply_parser.set_defaults(func=cmd_apply)

    # models command
    models_parser = subparsers.add_parser(
        "models",
        help="List available provider models",
    )
    models_parser.add_argument(
        "--family",
        "-f",
        type=str,
        default=None,
        choices=[f.value for f in WireFamily],
        help="Only list one wire family",
    )
    models_parser.set_defaults(func=cmd_list_models)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(get_environment(EnvVar.LOG_LEVEL))
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
