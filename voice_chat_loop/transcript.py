#!/usr/bin/env python3
"""
Transcript accumulation for the voice chat loop.
"""

from typing import List


class TranscriptCollector:
    """Buffers recognized fragments of one utterance in arrival order."""

    def __init__(self):
        self.parts: List[str] = []

    def add_fragment(self, text: str):
        """Append a partial or final fragment to the current utterance."""
        self.parts.append(text)

    def current_text(self) -> str:
        """Best-effort utterance so far: all fragments joined by a single space."""
        return ' '.join(self.parts)

    def reset(self):
        """Forget every fragment; call once per completed utterance."""
        self.parts = []

    def consume(self) -> str:
        """Read the finished utterance (trimmed) and reset the buffer."""
        text = self.current_text().strip()
        self.reset()
        return text

    def __len__(self) -> int:
        return len(self.parts)
