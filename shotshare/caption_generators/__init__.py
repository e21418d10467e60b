"""Caption generators, selected by the CAPTION_GENERATOR setting."""
from .base import BaseCaptionGenerator
from .dummy_generator import DummyCaptionGenerator, NoCaptionGenerator
from .gemini_generator import GeminiCaptionGenerator

__all__ = [
    "BaseCaptionGenerator",
    "DummyCaptionGenerator",
    "NoCaptionGenerator",
    "GeminiCaptionGenerator",
    "get_caption_generator",
]

_GENERATORS = {
    "gemini": GeminiCaptionGenerator,
    "dummy": DummyCaptionGenerator,
    "none": NoCaptionGenerator,
}


def get_caption_generator(generator_type: str = "gemini") -> BaseCaptionGenerator:
    """
    Build the configured caption generator.

    Raises:
        ValueError: If the name is not one of gemini, dummy or none
    """
    try:
        return _GENERATORS[generator_type.lower()]()
    except KeyError:
        raise ValueError(
            f"Unknown caption generator type: {generator_type}. "
            f"Available: {', '.join(_GENERATORS)}"
        ) from None
