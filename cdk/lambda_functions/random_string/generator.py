"""
Random string generation for resource name suffixes
"""

import random
import string
from dataclasses import dataclass
from typing import Any, Optional

# Name decoration only, so the non-cryptographic generator is sufficient
ALPHABET = string.ascii_letters


class InvalidLengthError(ValueError):
    """Raised when the requested string length is not a positive integer"""

    def __init__(self, length: Any):
        self.length = length
        super().__init__(f"StringLength must be a positive integer, got {length!r}")


@dataclass(frozen=True)
class GenerationRequest:
    length: int

    @classmethod
    def parse(cls, raw_length: Any) -> "GenerationRequest":
        """Build a request from the string-encoded length CloudFormation sends"""
        if isinstance(raw_length, bool):
            raise InvalidLengthError(raw_length)
        try:
            length = int(str(raw_length).strip())
        except (TypeError, ValueError):
            raise InvalidLengthError(raw_length)

        if length <= 0:
            raise InvalidLengthError(length)
        return cls(length=length)


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of a generation call: either a value or the error that prevented it"""
    value: Optional[str] = None
    error: Optional[InvalidLengthError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def generate(length: int, rng: Optional[random.Random] = None) -> str:
    """Return ``length`` characters drawn uniformly, with replacement, from [a-zA-Z]"""
    if isinstance(length, bool) or not isinstance(length, int) or length <= 0:
        raise InvalidLengthError(length)

    chooser = rng or random
    return ''.join(chooser.choice(ALPHABET) for _ in range(length))


def try_generate(raw_length: Any, rng: Optional[random.Random] = None) -> GenerationResult:
    """Parse and generate in one step, folding InvalidLengthError into the result"""
    try:
        request = GenerationRequest.parse(raw_length)
    except InvalidLengthError as e:
        return GenerationResult(error=e)
    return GenerationResult(value=generate(request.length, rng))
