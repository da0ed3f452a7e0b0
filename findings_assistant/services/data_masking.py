# data_masking.py
"""Reversible masking of personal data in text sent to the LLM."""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Pattern, Sequence, Tuple

# (kind, pattern). A capturing group limits masking to that group.
MASK_PATTERNS: Sequence[Tuple[str, Pattern[str]]] = (
    ("email", re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")),
    ("phone", re.compile(r"(?<!\w)(?:\+\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b")),
    ("id", re.compile(r"\b[A-Z]{2,}\d{6,}\b")),
    (
        "name",
        re.compile(
            r"\b(?i:auditor|inspector|manager|director|engineer)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)\b"
        ),
    ),
)


TOKEN_PATTERN = re.compile(r"\[[A-Z]+_\d+\]")


@dataclass
class MaskedValue:
    token: str
    original: str
    kind: str


class MaskingSession:
    """Token mapping shared by every text masked for one LLM exchange.

    The same original value always maps to the same token within a session,
    so the LLM can refer to it consistently and ``unmask`` restores it.
    """

    def __init__(self, patterns: Sequence[Tuple[str, Pattern[str]]] = MASK_PATTERNS):
        self.patterns = patterns
        self.values: List[MaskedValue] = []
        self._tokens: Dict[str, str] = {}

    @property
    def masked_count(self) -> int:
        return len(self.values)

    def mask(self, text: str) -> str:
        if not text:
            return text
        for kind, pattern in self.patterns:
            text = pattern.sub(lambda match, kind=kind: self._substitute(kind, match), text)
        return text

    def unmask(self, text: str) -> str:
        if not text:
            return text
        originals = {value.token: value.original for value in self.values}
        return TOKEN_PATTERN.sub(lambda match: originals.get(match.group(0), match.group(0)), text)

    def unmask_value(self, value: Any) -> Any:
        """Unmask strings, including those nested in lists and dicts"""
        if isinstance(value, str):
            return self.unmask(value)
        if isinstance(value, list):
            return [self.unmask_value(item) for item in value]
        if isinstance(value, dict):
            return {key: self.unmask_value(item) for key, item in value.items()}
        return value

    def split_partial(self, text: str) -> Tuple[str, str]:
        """Split off a trailing token that may still be arriving in a stream"""
        start = text.rfind("[")
        if start == -1 or "]" in text[start:]:
            return text, ""
        return text[:start], text[start:]

    def _substitute(self, kind: str, match: "re.Match[str]") -> str:
        group = 1 if match.re.groups else 0
        token = self._token_for(kind, match.group(group))
        if group == 0:
            return token
        whole = match.group(0)
        start, end = match.start(group) - match.start(), match.end(group) - match.start()
        return whole[:start] + token + whole[end:]

    def _token_for(self, kind: str, original: str) -> str:
        token = self._tokens.get(original)
        if token is None:
            token = f"[{kind.upper()}_{len(self.values) + 1}]"
            self._tokens[original] = token
            self.values.append(MaskedValue(token=token, original=original, kind=kind))
        return token


class DataMasker:
    """Creates masking sessions; a disabled masker passes text through"""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def session(self) -> MaskingSession:
        return MaskingSession(MASK_PATTERNS if self.enabled else ())
