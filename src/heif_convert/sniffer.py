"""Format classification through the generic decode path."""

from .codecs.registry import CodecRegistry, default_registry
from .common.formats import FormatTag


def classify(data: bytes, registry: CodecRegistry | None = None) -> FormatTag:
    """Classify encoded bytes by decoding them.

    Classification and decoding are the same step: the tag is whatever the
    matching decoder reports, so a successful call always yields a definite
    tag and an undecodable stream raises instead of returning ``unknown``.

    Raises:
        DecodeError: If no registered codec can decode ``data``
    """
    registry = registry if registry is not None else default_registry()
    _, tag = registry.decode(data)
    return tag
