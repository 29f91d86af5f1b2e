"""Token counting for the prompt budget.

Uses tiktoken with the cl100k_base encoding. The encoding is loaded once and
shared.
"""

from __future__ import annotations

import threading

import tiktoken

_ENCODING_NAME = "cl100k_base"

_TOKENIZER: tiktoken.Encoding | None = None
_LOCK = threading.Lock()


def get_tokenizer() -> tiktoken.Encoding:
    """Get or create the shared tokenizer instance."""
    global _TOKENIZER
    if _TOKENIZER is None:
        with _LOCK:
            if _TOKENIZER is None:
                _TOKENIZER = tiktoken.get_encoding(_ENCODING_NAME)
    return _TOKENIZER


def count_tokens(text: str) -> int:
    """Number of cl100k_base tokens in ``text``."""
    if not text:
        return 0
    return len(get_tokenizer().encode(text, disallowed_special=()))
