"""Extension keyed codec registry.

Each :class:`~lib_compiled_config.core.Config` owns its own registry, seeded
from :func:`default_registry` unless the caller passes one in, so tests and
applications never share hidden codec state.
"""

from __future__ import annotations

from ...application.ports import Decoder, Encoder
from ...domain.errors import CodecNotFound
from .structured import JSONCodec, TOMLDecoder, YAMLCodec


class CodecRegistry:
    """Map lower-cased extensions to decoders and encoders.

    The last registration for an extension wins. Encoder extensions keep
    their registration order because the first one is the default marshal
    format.

    Examples
    --------
    >>> from lib_compiled_config.adapters.codecs.structured import JSONCodec
    >>> registry = CodecRegistry()
    >>> registry.register_encoder(JSONCodec())
    >>> registry.encoder_extensions()
    ['json']
    >>> registry.find_decoder("yaml")
    Traceback (most recent call last):
    ...
    lib_compiled_config.domain.errors.CodecNotFound: no decoder registered for extension 'yaml'
    """

    def __init__(self) -> None:
        self._decoders: dict[str, Decoder] = {}
        self._encoders: dict[str, Encoder] = {}

    def register_decoder(self, decoder: Decoder | None) -> None:
        if decoder is None:
            return
        for ext in decoder.extensions():
            self._decoders[_normalise(ext)] = decoder

    def register_encoder(self, encoder: Encoder | None) -> None:
        if encoder is None:
            return
        for ext in encoder.extensions():
            self._encoders[_normalise(ext)] = encoder

    def find_decoder(self, extension: str) -> Decoder:
        try:
            return self._decoders[_normalise(extension)]
        except KeyError:
            raise CodecNotFound(f"no decoder registered for extension '{extension}'") from None

    def find_encoder(self, extension: str) -> Encoder:
        try:
            return self._encoders[_normalise(extension)]
        except KeyError:
            raise CodecNotFound(f"no encoder registered for extension '{extension}'") from None

    def decoder_extensions(self) -> list[str]:
        return list(self._decoders)

    def encoder_extensions(self) -> list[str]:
        return list(self._encoders)

    def copy(self) -> CodecRegistry:
        clone = CodecRegistry()
        clone._decoders = dict(self._decoders)
        clone._encoders = dict(self._encoders)
        return clone


def _normalise(extension: str) -> str:
    return extension.lstrip(".").lower()


def default_registry() -> CodecRegistry:
    """Return a fresh registry with the YAML, JSON and TOML codecs.

    YAML is registered first, so documents marshal as YAML unless a format
    is requested.
    """

    registry = CodecRegistry()
    for codec in (YAMLCodec(), JSONCodec()):
        registry.register_decoder(codec)
        registry.register_encoder(codec)
    registry.register_decoder(TOMLDecoder())
    return registry
