# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Text formatting for assistant replies.

Terminals cannot typeset LaTeX, so math is reduced to readable plain text
before the reply is rendered as markdown.
"""

from __future__ import annotations

import re

from rich.markdown import Markdown

_LATEX_RULES = [
    # delimiters: \( \) \[ \] $$ $
    (re.compile(r"\\\(\s*|\s*\\\)"), ""),
    (re.compile(r"\\\[\s*|\s*\\\]"), ""),
    (re.compile(r"\$\$\s*"), ""),
    (re.compile(r"(?<!\\)\$([^$\n]+)(?<!\\)\$"), r"\1"),
    (re.compile(r"\\frac\{([^}]*)\}\{([^}]*)\}"), r"(\1)/(\2)"),
    (re.compile(r"\\sqrt\{([^}]*)\}"), r"sqrt(\1)"),
    (re.compile(r"\\(?:text|textbf|textit|mathrm|mathbf)\{([^}]*)\}"), r"\1"),
    (re.compile(r"\^\{([^}]*)\}"), r"^(\1)"),
    (re.compile(r"_\{([^}]*)\}"), r"_(\1)"),
]

_LATEX_SYMBOLS = {
    r"\times": "x",
    r"\cdot": "*",
    r"\pm": "+/-",
    r"\leq": "<=",
    r"\geq": ">=",
    r"\neq": "!=",
    r"\approx": "~=",
    r"\infty": "infinity",
    r"\pi": "pi",
    r"\ldots": "...",
    r"\cdots": "...",
}


def clean_latex(text: str) -> str:
    """Convert common LaTeX notation to plain text equivalents."""
    for pattern, replacement in _LATEX_RULES:
        text = pattern.sub(replacement, text)
    for symbol, plain in _LATEX_SYMBOLS.items():
        text = text.replace(symbol, plain)
    return text


def render_markdown(text: str) -> Markdown:
    """Render text as markdown with LaTeX cleaned up."""
    return Markdown(clean_latex(text))
