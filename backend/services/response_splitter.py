"""
Response Splitter - separate generated code from the prose explanation
"""

from __future__ import annotations

import re
from dataclasses import dataclass

FENCE_PATTERN = re.compile(r"```[^\n`]*\n(.*?)```", re.DOTALL)
BLANK_RUN_PATTERN = re.compile(r"\n[ \t]*(?:\n[ \t]*){2,}")

# Used when the model answered without fences
CODE_TOKEN_PATTERNS = [
    re.compile(r"\bfunction\b"),
    re.compile(r"\b(?:const|let|var)\s+[\w$]+\s*="),
    re.compile(r"\bclass\s+[A-Z_$][\w$]*"),
    re.compile(r"^\s*(?:import|export)\s", re.MULTILINE),
    re.compile(r"\b(?:if|for|while|switch)\s*\("),
    re.compile(r"^\s*//", re.MULTILINE),
    re.compile(r"/\*"),
]

HELPER_MARKER = "===== GEMINI HELPER LIBRARY ====="
HELPER_END_MARKER = "===== END GEMINI HELPER LIBRARY ====="


@dataclass
class SplitResponse:
    code: str
    explanation: str


def extract_code_blocks(content: str) -> list[str]:
    """All non-empty fenced blocks, trimmed, in source order"""
    blocks = []
    for match in FENCE_PATTERN.finditer(content):
        code = match.group(1).strip()
        if code:
            blocks.append(code)
    return blocks


def looks_like_code(text: str) -> bool:
    return any(pattern.search(text) for pattern in CODE_TOKEN_PATTERNS)


def append_helper(code: str, helper_source: str) -> str:
    """Append the helper library once; a second call returns ``code`` unchanged"""
    if not code or not helper_source.strip() or HELPER_MARKER in code:
        return code
    return f"{code}\n\n// {HELPER_MARKER}\n{helper_source.strip()}\n// {HELPER_END_MARKER}"


def split_response(raw_text: str, include_helper: bool, helper_source: str = "") -> SplitResponse:
    """Split raw model output into ``code`` and ``explanation``.

    Every fenced block counts: a model may spread one program across several
    fences, so the blocks are joined in order. Without any fence the whole
    text is either code or explanation, decided by a keyword heuristic.
    """
    blocks = extract_code_blocks(raw_text)

    if FENCE_PATTERN.search(raw_text):
        code = "\n\n".join(blocks)
        explanation = FENCE_PATTERN.sub("", raw_text)
        explanation = BLANK_RUN_PATTERN.sub("\n\n", explanation).strip()
    elif looks_like_code(raw_text):
        code = raw_text.strip()
        explanation = ""
    else:
        code = ""
        explanation = raw_text.strip()

    if include_helper:
        code = append_helper(code, helper_source)

    return SplitResponse(code=code, explanation=explanation)
