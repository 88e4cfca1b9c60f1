"""
Tolerant parsing of classification responses.

Models wrap answers in code fences, add leading prose, or return
slightly malformed arrays. Extraction tries, in order: direct JSON,
fenced code block, bracket slice (each with a trailing-comma repair),
then a bare letter sequence. Nothing here raises; failure is logged
and reported as None so the caller can keep the whole batch.
"""

import json
import logging
import re
from typing import Any, Optional


logger = logging.getLogger(__name__)

CODE_BLOCK_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
TRAILING_COMMA_RE = re.compile(r",\s*([\]}])")
INDEX_KEY_RE = re.compile(r"[\"']index[\"']\s*:")


def _repair(text: str) -> str:
    return TRAILING_COMMA_RE.sub(r"\1", text)


def _loads(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError, TypeError):
        pass
    # Trailing commas and raw control characters inside strings
    try:
        return json.loads(_repair(text), strict=False)
    except (json.JSONDecodeError, ValueError, TypeError):
        return None


def _code_block(text: str) -> Optional[Any]:
    match = CODE_BLOCK_RE.search(text)
    if not match:
        return None
    return _loads(match.group(1).strip())


def _bracket_slice(text: str) -> Optional[Any]:
    for open_char, close_char in (("[", "]"), ("{", "}")):
        start = text.find(open_char)
        end = text.rfind(close_char)
        if start != -1 and end > start:
            parsed = _loads(text[start:end + 1])
            if parsed is not None:
                return parsed
    return None


def parse_json_response(text: Optional[str], context: str = "response") -> Optional[Any]:
    """
    Extract a JSON value from model output.
    Returns None (and logs) if every strategy fails.
    """
    if not text or not text.strip():
        logger.warning(f"Empty {context} from classification service")
        return None

    cleaned = text.strip()
    for strategy in (_loads, _code_block, _bracket_slice):
        parsed = strategy(cleaned)
        if parsed is not None:
            return parsed

    logger.warning(f"Could not parse JSON from {context}: {cleaned[:120]!r}")
    return None


def _label_from_entry(entry: Any, allowed: str) -> Optional[str]:
    if isinstance(entry, str):
        label = entry.strip().upper()[:1]
        return label if label and label in allowed else None
    if isinstance(entry, dict):
        if "label" in entry:
            return _label_from_entry(str(entry["label"]), allowed)
        if "decision" in entry:
            return _label_from_entry(str(entry["decision"]), allowed)
        if "score" in entry and "Y" in allowed and "N" in allowed:
            try:
                return "Y" if float(entry["score"]) >= 0.5 else "N"
            except (TypeError, ValueError):
                return None
    return None


def _labels_from_json(parsed: Any, expected: int, allowed: str) -> Optional[list[Optional[str]]]:
    if isinstance(parsed, dict):
        for key in ("decisions", "results", "labels"):
            if isinstance(parsed.get(key), list):
                parsed = parsed[key]
                break
        else:
            return None

    if not isinstance(parsed, list) or not parsed:
        return None

    # [{index, label}, ...] - re-associate by index, never by order
    if all(isinstance(e, dict) and "index" in e for e in parsed):
        indices = []
        for e in parsed:
            try:
                indices.append(int(e["index"]))
            except (TypeError, ValueError):
                return None
        offset = 0 if 0 in indices else 1
        labels: list[Optional[str]] = [None] * expected
        for idx, entry in zip(indices, parsed):
            position = idx - offset
            if 0 <= position < expected:
                labels[position] = _label_from_entry(entry, allowed)
        return labels

    # ["Y", "N", ...] - positional
    if len(parsed) != expected:
        return None
    labels = [_label_from_entry(e, allowed) for e in parsed]
    if any(label is None for label in labels):
        return None
    return labels


def _labels_from_letters(text: str, expected: int, allowed: str) -> Optional[list[Optional[str]]]:
    letters = re.escape(allowed)
    upper = text.upper()

    compact = re.sub(r"[\s,;\"'`\[\]]", "", upper)
    if re.fullmatch(f"[{letters}]+", compact) and len(compact) == expected:
        return list(compact)

    found = re.findall(rf"\b([{letters}])\b", upper)
    if len(found) == expected:
        return found

    # "Answer: YNY" - last standalone run of exactly `expected` letters
    runs = re.findall(rf"\b[{letters}]{{{expected}}}\b", upper)
    if runs:
        return list(runs[-1])
    return None


def parse_letter_decisions(
    text: Optional[str],
    expected: int,
    allowed: str = "YN",
) -> Optional[list[Optional[str]]]:
    """
    Parse per-item letter decisions for a batch of `expected` items.

    Accepts "YNY", a JSON array of letters, or a JSON array of
    {"index": i, "label": "Y"} objects. Returns one entry per input
    position (None where the model gave no usable answer), or None if
    the response could not be understood at all.
    """
    if not text or not text.strip() or expected <= 0:
        logger.warning("Empty classification response")
        return None

    cleaned = text.strip()
    for strategy in (_loads, _code_block, _bracket_slice):
        parsed = strategy(cleaned)
        if parsed is not None:
            labels = _labels_from_json(parsed, expected, allowed)
            if labels is not None:
                return labels

    # Index objects that failed to parse must not fall back to arrival order
    if INDEX_KEY_RE.search(cleaned):
        logger.warning(f"Could not parse indexed decisions from classification response: {cleaned[:120]!r}")
        return None

    labels = _labels_from_letters(cleaned, expected, allowed)
    if labels is not None:
        return labels

    logger.warning(
        f"Could not parse {expected} decisions from classification response: {cleaned[:120]!r}"
    )
    return None
