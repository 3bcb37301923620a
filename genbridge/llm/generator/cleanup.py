"""Post-processing of model output applied in place of the source text.

Models asked to rewrite a short piece of text tend to wrap the answer in
quotes, prefix it with a label or keep talking after the answer. The
cleanup below trims that noise using the source text as a size reference.
"""

import re

QUOTE_PAIRS = (
    ('"', '"'),
    ("'", "'"),
    ("«", "»"),
    ("“", "”"),
    ("„", "“"),
    ("‘", "’"),
    ("「", "」"),
)

RESPONSE_LABELS = (
    "Answer",
    "Result",
    "Output",
    "Translation",
    "Ответ",
    "Перевод",
    "Результат",
    "Réponse",
    "Traduction",
    "Respuesta",
    "Traducción",
    "回答",
    "翻訳",
    "翻译",
    "答案",
)

_LABEL_PATTERN = re.compile(
    r"^(?:" + "|".join(re.escape(label) for label in RESPONSE_LABELS) + r")\s*[:：]\s*",
    re.IGNORECASE,
)


def _strip_quotes(text: str) -> str:
    """Remove one pair of matching wrapping quotes."""
    for opening, closing in QUOTE_PAIRS:
        if len(text) >= 2 and text.startswith(opening) and text.endswith(closing):
            return text[1:-1].strip()
    return text


def _strip_label(text: str) -> str:
    return _LABEL_PATTERN.sub("", text, count=1).strip()


def _non_empty_lines(text: str) -> list[str]:
    return [line.strip() for line in text.split("\n") if line.strip()]


def clean_response(raw: str, source: str) -> str:
    """Clean a model reply meant to replace `source`.

    Steps:
        1. Strip surrounding whitespace.
        2. Remove one pair of wrapping quotes.
        3. Remove a leading "Answer:"-style label.
        4. Single-line source: keep only the first non-empty line.
        5. Multi-line source: if the reply has more than twice as many
           non-empty lines, keep as many lines as the source has.
        6. Reply over three times longer than the source: keep the first line.
        7. Repeat steps 2 and 3 once.

    Args:
        raw: Text returned by the model.
        source: Original text the reply replaces.

    Returns:
        Cleaned text.

    Example:
        >>> clean_response('Translation: "Hola"', "Hello")
        'Hola'
    """
    result = raw.strip()
    result = _strip_quotes(result)
    result = _strip_label(result)

    lines = _non_empty_lines(result)
    if "\n" not in source:
        if "\n" in result and lines:
            result = lines[0]
    elif "\n" in result:
        source_count = len(_non_empty_lines(source))
        if len(lines) > source_count * 2:
            result = "\n".join(lines[:source_count])

    if source and len(result) > len(source) * 3:
        lines = _non_empty_lines(result)
        if lines:
            result = lines[0]

    result = _strip_quotes(result)
    result = _strip_label(result)
    return result


__all__ = ["clean_response", "QUOTE_PAIRS", "RESPONSE_LABELS"]
