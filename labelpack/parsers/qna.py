"""
Built-in grammar for `.qna` question/answer markup.

    > comment
    # ? How do I reset my password?
    - I forgot my password
    **Filters:**
    - category = account
    ```markdown
    Use the "Forgot password" link on the sign-in page.
    ```
"""
from __future__ import annotations

import re
from typing import Any, Optional

from .base import GrammarError

_QUESTION_HEADER = re.compile(r"^#+\s*\?\s*(?P<question>.*?)\s*$")
_ALTERNATE = re.compile(r"^[-*+]\s+(?P<text>.*\S)\s*$")
_FILTERS = re.compile(r"^\*\*Filters:\*\*\s*$", re.IGNORECASE)


class QnaParser:
    """Parses `.qna` markup into a knowledge-base object."""

    name = "qna"

    def parse(self, content: str, source_id: str = "") -> dict[str, Any]:
        """
        Raises:
            GrammarError: If a question has no answer or a fence is unclosed
        """
        pairs: list[dict[str, Any]] = []
        questions: list[str] = []
        question_line: Optional[int] = None
        answer_lines: Optional[list[str]] = None
        fence_line = 0
        in_filters = False

        def close_pair() -> None:
            if question_line is None:
                return
            if answer_lines is None:
                raise GrammarError("Question has no answer", question_line, source_id)
            pairs.append({
                "id": len(pairs) + 1,
                "questions": list(questions),
                "answer": "\n".join(answer_lines).strip(),
            })

        for line_number, line in enumerate(content.splitlines(), start=1):
            stripped = line.strip()

            # Inside an answer fence every line is answer text
            if answer_lines is not None and fence_line:
                if stripped.startswith("```"):
                    fence_line = 0
                else:
                    answer_lines.append(line.rstrip())
                continue

            if not stripped or stripped.startswith(">"):
                continue

            header = _QUESTION_HEADER.match(stripped)
            if header:
                close_pair()
                questions = [header.group("question")] if header.group("question") else []
                question_line = line_number
                answer_lines = None
                in_filters = False
                continue

            if question_line is None:
                continue

            if stripped.startswith("```"):
                if answer_lines is not None:
                    raise GrammarError("Question has more than one answer", line_number, source_id)
                answer_lines = []
                fence_line = line_number
                in_filters = False
                continue

            if _FILTERS.match(stripped):
                in_filters = True
                continue

            alternate = _ALTERNATE.match(stripped)
            if alternate and not in_filters and answer_lines is None:
                questions.append(alternate.group("text"))

        if fence_line:
            raise GrammarError("Unclosed answer block", fence_line, source_id)
        close_pair()

        return {"kb": {"qnaList": pairs}}
