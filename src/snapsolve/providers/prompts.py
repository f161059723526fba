"""Prompt templates shared by the chat-style provider adapters."""

from __future__ import annotations

DEFAULT_SYSTEM_PROMPT = """You are an expert competitive programmer and software engineer helping a user solve a coding problem shown in screenshots.

Always respond ONLY with a single valid JSON object matching the format you are asked for. Do not wrap it in markdown and do not add any text before or after it."""


EXTRACT_PROMPT = """The attached screenshots show a programming problem, possibly split across several images in order.

Read the full problem and respond with JSON in this format:
{
    "title": "short problem title",
    "description": "the complete problem statement as plain text",
    "constraints": {
        "input_format": "..." or null,
        "output_format": "..." or null,
        "limits": ["1 <= n <= 10^5", "..."]
    },
    "examples": [
        {"input": "...", "output": "...", "explanation": "..." or null}
    ]
}
"""


SOLVE_PROMPT = """Write a correct and efficient solution in {language} for the following problem.

PROBLEM (JSON):
{problem}

Respond with JSON in this format:
{{
    "language": "{language}",
    "code": "the complete solution source code",
    "explanation": "how the solution works",
    "time_complexity": "O(...)",
    "space_complexity": "O(...)"
}}
"""


DEBUG_PROMPT = """The current solution to a programming problem is below. The attached screenshots show what happened when it was run: failing tests, error output, or feedback.

CURRENT SOLUTION (language: {language}):
{code}

Find what is wrong and produce a corrected solution. Keep the same language unless the screenshots require a different one.

Respond with JSON in this format:
{{
    "language": "{language}",
    "code": "the complete corrected source code",
    "explanation": "how the corrected solution works",
    "changes": "what you changed compared to the current solution and why",
    "issues": ["each problem you identified in the screenshots"],
    "time_complexity": "O(...)",
    "space_complexity": "O(...)"
}}
"""
