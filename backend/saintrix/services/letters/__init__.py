"""Dispute letter drafting."""
from .letter_generator import DisputeLetterGenerator, LetterRequest, build_prompt

__all__ = ["DisputeLetterGenerator", "LetterRequest", "build_prompt"]
