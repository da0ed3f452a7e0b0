# mock_llm.py
import re
from collections import Counter
from typing import AsyncIterator, Optional

from findings_assistant.core import LLMCompletion, LLMInterface
from findings_assistant.query_handlers.context_builder import estimate_tokens

FINDING_LINE = re.compile(r"^\d+\.\s+\[(\w+)\]\s+(.+?)\s+\(([^)]+)\)\s*$", re.MULTILINE)
SEVERITY_ORDER = ["Critical", "High", "Medium", "Low"]


class MockLLM(LLMInterface):
    """Deterministic offline LLM for development and tests"""

    def __init__(self):
        self.calls = []

    def complete(
        self,
        prompt: str,
        context: Optional[str] = None,
        max_tokens: int = 1024,
        timeout: Optional[float] = None,
    ) -> LLMCompletion:
        self.calls.append(prompt)
        full_prompt = f"{context}\n\n{prompt}" if context else prompt

        if prompt.startswith("Extract search filters"):
            text = "{}"
        else:
            text = self._analyse(full_prompt)

        return LLMCompletion(text=text, tokens_used=estimate_tokens(full_prompt) + estimate_tokens(text))

    async def astream(
        self,
        prompt: str,
        context: Optional[str] = None,
        max_tokens: int = 1024,
    ) -> AsyncIterator[str]:
        completion = self.complete(prompt, context, max_tokens)
        for word in completion.text.split(" "):
            yield word + " "

    def _analyse(self, prompt: str) -> str:
        findings = FINDING_LINE.findall(prompt)
        if not findings:
            return "No findings were provided, so there is nothing to analyse for this question."

        severities = Counter(severity for severity, _, _ in findings)
        ranked = sorted(
            findings,
            key=lambda item: SEVERITY_ORDER.index(item[0]) if item[0] in SEVERITY_ORDER else len(SEVERITY_ORDER),
        )
        breakdown = ", ".join(
            f"{severities[level]} {level}" for level in SEVERITY_ORDER if severities[level]
        )
        focus = "\n".join(f"- {title} ({status})" for _, title, status in ranked[:3])
        return (
            f"Based on {len(findings)} relevant findings ({breakdown}), the priorities are:\n"
            f"{focus}\n"
            "Address the highest severity items first and check that their root causes "
            "are covered by preventive controls."
        )
